"""State models shared between the chat controller and its observers."""
