"""
Value types and collaborator interfaces for the personalization engine.
"""
