"""edcctl: EDC deployment and Dataspace Protocol workflow CLI."""

__version__ = "0.3.0"
