"""Activities hosted by the termxfer event loop."""
