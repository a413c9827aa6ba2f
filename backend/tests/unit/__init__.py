"""
Unit tests package.

Contains isolated unit tests for domain logic, services, DTOs and
configuration that run without a database or HTTP requests.
"""
