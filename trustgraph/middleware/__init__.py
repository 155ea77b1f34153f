# -*- coding: utf-8 -*-
"""
Middleware package for the TrustGraph API
"""
