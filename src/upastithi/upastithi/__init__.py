"""Upastithi attendance engine.

This package is organized by feature modules (sessions, attendance, requests,
analytics, ...) with a thin Flask controller layer and service/repository
layers underneath. Every service call takes the caller identity explicitly.
"""
