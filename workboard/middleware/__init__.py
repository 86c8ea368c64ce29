"""Request middleware: logging and timing."""
