"""Helpers for making HTTP requests in tests and checking JSON responses."""