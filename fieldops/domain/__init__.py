"""Business domains: team, quotes, jobs"""
