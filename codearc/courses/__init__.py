"""Courses, chapters and catalog listing."""
