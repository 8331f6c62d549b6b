"""TourneyMethod admin backend."""
