"""Core — models, engine, persistence and use cases."""
