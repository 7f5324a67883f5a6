"""
Processing module for queue-based upload ingestion.

This module handles the bounded upload queue, progress tracking for
uploads, file validation and extraction, and the manager that ties them
together.
"""
