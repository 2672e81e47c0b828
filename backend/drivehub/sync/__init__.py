# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Offline sync: three-way diff, remote snapshot, server actions and the
device-side push/pull client.
"""
