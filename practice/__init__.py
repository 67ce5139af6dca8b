"""Practice opponents that play through a Room directly."""
