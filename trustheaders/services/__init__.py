# -*- coding: utf-8 -*-
"""Location: ./trustheaders/services/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Services for header resolution, session caching and reporting.
"""
