"""
insightflow - Workshop Session Lifecycle, Voting & Insight Extraction

Participants join a host's session, vote for each other, and are routed
into "nugget" or "lightbulb" AI conversations whose transcripts are mined
for insights and synthesized into a session report.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
