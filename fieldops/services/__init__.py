"""Outbound collaborators and best-effort side effects"""
