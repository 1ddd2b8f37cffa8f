# Domain Package
"""
Entities and abstract contracts shared by the core and infrastructure layers.
"""
