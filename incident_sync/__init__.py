"""Incident <-> case data-sync service"""
