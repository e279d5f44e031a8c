"""Co-parenting coordination API"""
