"""Mock and entity factories for tests."""
