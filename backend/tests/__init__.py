"""Test suite for the gym back office core."""
