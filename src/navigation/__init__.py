"""Route progress tracking and navigation sessions."""
