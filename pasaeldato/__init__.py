"""Tips and communities API."""
