"""Families domain - membership, invites, share codes and children"""
