"""Availability domain - weekly schedules and dated time slots"""
