"""Mentors domain - applications, discovery and mentor dashboards"""
