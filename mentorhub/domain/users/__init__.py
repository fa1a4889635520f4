"""Users domain - registration, login, tokens and profiles"""
