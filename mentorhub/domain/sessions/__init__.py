"""Sessions domain - one-to-one booking, lifecycle and video rooms"""
