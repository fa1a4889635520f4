"""Payouts domain - mentor payout settings and withdrawals"""
