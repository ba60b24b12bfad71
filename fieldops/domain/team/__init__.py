"""Team domain - Technician profiles, availability and eligibility matching"""
