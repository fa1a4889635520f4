"""Integrations with third-party services"""
