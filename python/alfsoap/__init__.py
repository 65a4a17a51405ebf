"""
an asynchronous client library for the Alfresco SOAP web services (AuthenticationService,
RepositoryService, ContentService) that presents repository nodes as normalized records.

This package includes the following components:

:py:mod:`noderef`
    parsing and formatting of node references (``scheme://address/id``)
:py:mod:`normalize`
    conversion of the variously shaped service responses into uniform node records
:py:mod:`resolve`
    resolution of a node's hierarchical path by walking up its parents
:py:mod:`navigate`
    folder navigation: finding the repository root and listing a node's children
:py:mod:`clients`
    clients for the individual SOAP services
:py:mod:`client`
    :py:class:`~alfsoap.client.AlfrescoClient`, the client that ties the above together
:py:mod:`cli`
    a command-line interface for browsing a repository

Alfresco servers of different versions return the same logical result in different
shapes; much of this package is concerned with reconciling them.  Failures are reported
with the exceptions defined in :py:mod:`alfsoap.exceptions`.
"""
try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

from .exceptions import *
from .noderef import NodeReference, parse_reference, format_reference
from .normalize import NodeRecord, NodeList
from .navigate import Navigator, RepositoryTransport
from .client import AlfrescoClient, ContentData
