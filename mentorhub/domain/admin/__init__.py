"""Admin domain - moderation and mentor approval"""
