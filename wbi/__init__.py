"""Steps for installing and configuring Posit Workbench and its companion tools on Linux servers."""

__version__ = "0.1.0"