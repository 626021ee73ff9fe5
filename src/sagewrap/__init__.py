"""sagewrap - hardware transcode wrapper for the SageTV ffmpeg invocation."""

__version__ = "0.1.0"
