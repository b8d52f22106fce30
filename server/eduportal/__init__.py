"""
Smart Education Portal backend.

Exam access control, attendance QR scanning and AI advisory endpoints.
"""
