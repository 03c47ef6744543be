"""FlowTrack - approval workflow for sales pricing requests."""

__version__ = "0.1.0"
