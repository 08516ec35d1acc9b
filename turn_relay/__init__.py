"""Turn relay server for a game-playing agent."""
