"""Tasks domain - shared to-dos between the parents"""
