"""Grading aggregation backend for CS Expo capstone presentations."""
