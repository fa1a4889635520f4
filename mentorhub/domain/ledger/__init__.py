"""Ledger domain - balances and the append-only transaction log"""
