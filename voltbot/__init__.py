"""VoltBot - a Discord economy bot with a shop, jobs, blackjack and giveaways."""

__version__ = "1.0.0"
