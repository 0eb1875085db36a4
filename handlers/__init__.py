"""
Handlers package for Quiz Battle Bot

This package contains the bot's command and callback handlers.
"""
