"""
Top-level package for Melodiqa, the audio-input-to-Discord-voice streamer.

This package hosts:
- command line parsing and config loading
- audio device discovery and the PortAudio capture thread
- the discord.py client, voice source and slash commands
- session orchestration tying capture and voice together
"""

__version__ = "1.0.0"
