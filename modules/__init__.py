"""
Modules package for Quiz Battle Bot

This package contains the quiz engine and its supporting modules.
"""
