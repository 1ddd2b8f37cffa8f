"""StyleMatch - multi-vector inspiration matching for beauty services.

Matches a client's inspiration photo against professional service media
using visual, style, semantic, color and hybrid embeddings.
"""

__version__ = "0.1.0"
__author__ = "StyleMatch Team"
