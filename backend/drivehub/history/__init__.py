# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Edit history: diff engine, local session history, remote history documents.
"""

from drivehub.history.diff import (
    DiffWithOrigin,
    create_diff,
    reverse_apply_diff,
    reconstruct_content,
)

__all__ = ["DiffWithOrigin", "create_diff", "reverse_apply_diff", "reconstruct_content"]
