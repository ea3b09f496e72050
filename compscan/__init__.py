"""compscan: catalog reusable component usage across a Swift package."""

__version__ = "0.1.0"
