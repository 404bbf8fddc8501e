"""
Transcript studio: video assets, their audio and transcripts.

Keeps a registry of the videos in a data directory, extracts audio with
ffmpeg, transcribes it with a local whisper install (falling back to the
OpenAI API) and stores editable transcript documents with screenshot
markers.
"""

__version__ = "0.1.0"
