"""Domain services for classifying, scanning and storing courses."""
