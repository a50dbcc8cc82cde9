"""Unified feed of videos from YouTube, PeerTube and Odysee channels."""

__version__ = "0.1.0"
