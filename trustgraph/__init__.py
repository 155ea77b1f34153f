# -*- coding: utf-8 -*-
"""
TrustGraph: reputation scoring and ranking for autonomous agents.
"""

__version__ = "0.1.0"
