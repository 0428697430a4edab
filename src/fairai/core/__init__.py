"""Core types, configuration, constants and errors shared by every FairAI module."""
