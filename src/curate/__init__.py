"""curate - plain-text link curation and digest compiler."""

__version__ = "0.4.0"
