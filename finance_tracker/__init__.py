"""Personal finance reporting: period summaries, trends and budget rollups."""

__version__ = "0.1.0"
