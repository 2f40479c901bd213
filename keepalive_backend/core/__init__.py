"""Core keep-alive services"""
