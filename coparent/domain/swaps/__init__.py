"""Swap requests domain - custody day swap negotiation"""
