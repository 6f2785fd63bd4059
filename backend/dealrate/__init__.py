"""Deal Rate backend: peer-rated marketplace posts behind a reciprocity gate."""

__version__ = "0.1.0"
