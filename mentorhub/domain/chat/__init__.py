"""Chat domain - two-party conversations and messages"""
