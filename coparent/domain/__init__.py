"""Domain packages: one per family-scoped resource with its own workflow"""
