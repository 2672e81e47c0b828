# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for DriveHub

Structure:
- unit/: Core pieces (execution store, MCP client, edit history, editor helpers)
- workflow/: Workflow engine and node handlers
- sync/: Sync diff, sync service and device-side sync client
- test_api.py: HTTP routes through the FastAPI test client
"""
