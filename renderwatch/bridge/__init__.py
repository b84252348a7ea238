"""Transport bridge — ingestion channels and the wire codec.

Everything the monitor knows about the render process arrives through a
channel defined here; nothing else in the package talks to a transport.
"""
