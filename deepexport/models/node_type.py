"""
NodeType enum for classifying repository objects.

Every sysobject returned by a folder enumeration is classified into one of
three categories before dispatch:
1. Folder - recursed into, mirrored as a local directory
2. Document - handed to the content export step
3. Other - any other sysobject subtype, skipped
"""

from enum import Enum


class NodeType(Enum):
    """Type tag of a repository object."""
    FOLDER = "folder"        # dm_folder and subtypes (dm_cabinet included)
    DOCUMENT = "document"    # dm_document and subtypes
    OTHER = "other"          # Any other dm_sysobject subtype
