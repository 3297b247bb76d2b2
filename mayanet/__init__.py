"""A small network stack over a simulated NIC, with binary structure codecs and in-memory widgets."""

__version__ = "0.1.0"