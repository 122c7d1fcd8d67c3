"""Chat transcript, composer autocompletion and the per-session controller."""
