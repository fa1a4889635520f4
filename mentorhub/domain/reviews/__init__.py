"""Reviews domain - mentee ratings of completed sessions"""
