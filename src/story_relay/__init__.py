"""
Story Relay

Client for collaborative branching stories: one user writes an introduction,
others submit continuations, participants vote and a winner extends the story.
The backend canister is the source of truth; this package only mirrors it.
"""

__version__ = "0.1.0"
