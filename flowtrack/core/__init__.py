"""Core modules for FlowTrack."""
