"""Group sessions domain - multi-participant sessions hosted by mentors"""
