"""Notifications domain - persisted inbox plus realtime pushes"""
