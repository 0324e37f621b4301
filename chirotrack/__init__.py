"""
ChiroTrack backend API.
"""
