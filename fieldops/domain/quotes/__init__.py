"""Quotes domain - Quote lifecycle and quote acceptance"""
