# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
RAG eligibility and exclude-pattern matching.
"""

import logging
import re
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# text/document/code only
RAG_ELIGIBLE_EXTENSIONS = {
    ".md", ".txt", ".csv", ".tsv", ".json", ".xml", ".html", ".yaml", ".yml",
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".rb", ".go", ".rs",
    ".c", ".cpp", ".h", ".cs", ".php", ".dart", ".sql", ".sh",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".pptx",
}


def is_rag_eligible(file_name: str) -> bool:
    """Check if a file name is eligible for RAG based on extension"""
    dot = file_name.rfind(".")
    if dot < 0:
        return False
    return file_name[dot:].lower() in RAG_ELIGIBLE_EXTENSIONS


def matches_exclude_patterns(file_name: str, patterns: Optional[Iterable[str]]) -> bool:
    """True if any regex pattern matches somewhere in `file_name`. Invalid patterns are skipped."""
    for pattern in patterns or []:
        try:
            if re.search(pattern, file_name):
                return True
        except re.error as e:
            logger.debug(f"Skipping invalid exclude pattern {pattern!r}: {e}")
    return False
