"""
Exam Service Core App
"""
