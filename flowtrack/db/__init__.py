"""Relational persistence for FlowTrack."""
