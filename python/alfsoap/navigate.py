"""
Folder navigation over a repository: finding the repository root and listing the children
of a node.

:py:class:`Navigator` works against any object implementing the
:py:class:`RepositoryTransport` interface; :py:class:`~alfsoap.client.AlfrescoClient` is the
implementation that talks to an Alfresco server's SOAP services.

Two ways of listing the children of a node are supported.  The direct way asks the server
for the children of a node reference in a single call; not all server versions support it.
The fallback resolves the node's path (see :py:mod:`~alfsoap.resolve`) and issues a path
query.  Whether the direct call works is determined on first use and remembered for the
life of the Navigator.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping

from .noderef import (NodeReference, parse_reference, format_reference, normalize_reference,
                      as_reference)
from .normalize import NodeRecord, NodeList, normalize_nodes, extract_rows, build_node_record
from .resolve import PathResolver, path_expression, ROOT_SEGMENT, ROOT_NAME, MAX_DEPTH
from .exceptions import (AlfrescoException, RootNotFound, RecursionLimitExceeded,
                         ChildListingFailed, UnconstructibleRecord)
from . import config as cfgmod

__all__ = [ "RepositoryTransport", "Navigator", "parse_reference", "format_reference",
            "ROOT_PATH", "ROOT_CHILDREN_PATH" ]

ROOT_PATH = path_expression([ROOT_SEGMENT])
ROOT_CHILDREN_PATH = ROOT_PATH + "/*"

class RepositoryTransport(ABC):
    """
    the interface to a repository service needed by the :py:class:`Navigator`.  Each
    method is a coroutine returning the (arbitrarily shaped) response from the service.
    """

    @abstractmethod
    async def authenticate(self):
        """
        ensure that the transport holds valid credentials, obtaining them if necessary.
        Calling this when already authenticated has no effect.
        """
        raise NotImplementedError()

    @abstractmethod
    async def lookup_node(self, reference: NodeReference):
        """
        return the service's description of the node with the given reference
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_children_direct(self, reference: NodeReference):
        """
        return the service's listing of the children of the node with the given reference
        """
        raise NotImplementedError()

    @abstractmethod
    async def query_by_path(self, scheme: str, address: str, path: str):
        """
        return the nodes in the given store matching a path expression
        """
        raise NotImplementedError()

class Navigator:
    """
    a facade for navigating the folder hierarchy of a repository store.  Each instance
    looks up the repository root once, on first need, and remembers it.
    """

    def __init__(self, transport: RepositoryTransport, store: Mapping=None,
                 max_depth: int=MAX_DEPTH, log: logging.Logger=None):
        """
        initialize the navigator

        :param RepositoryTransport transport:  the interface to the repository's services
        :param dict store:     the store to navigate, given by its ``scheme`` and ``address``;
                               if not provided, the default (``workspace://SpacesStore``) is used.
        :param int max_depth:  the maximum number of ancestors to walk when resolving a path
        :param Logger log:     the Logger to use for messages
        """
        if not log:
            log = logging.getLogger("alfsoap.navigate")
        self.log = log
        self.transport = transport
        if not store:
            store = cfgmod.DEFAULTS['store']
        self.store = { "scheme": store['scheme'], "address": store['address'] }
        self.max_depth = max_depth

        self._root = None
        self._direct_supported = None

    @property
    def direct_listing_supported(self):
        """
        True if the direct child listing is known to work, False if it is known not to, or
        None if it has not been tried yet.
        """
        return self._direct_supported

    async def resolve_root(self) -> NodeRecord:
        """
        return the record for the repository's root node (Company Home).  The root is looked
        up on the first call only.

        :raises RootNotFound:  if the lookup's response does not describe a node
        """
        if self._root is not None:
            return self._root

        await self.transport.authenticate()
        envelope = await self.transport.query_by_path(self.store['scheme'], self.store['address'],
                                                      ROOT_PATH)
        rows = extract_rows(envelope)
        if not rows:
            raise RootNotFound(ROOT_PATH, "Company Home not found: empty response")
        raw = rows[0]
        try:
            record = build_node_record(raw)
        except UnconstructibleRecord as ex:
            raise RootNotFound(ROOT_PATH, "Company Home lookup succeeded but nodeRef could "
                                          "not be determined") from ex

        if isinstance(raw, Mapping) and not raw.get('name') and \
           record.name == record.reference.id:
            record = record._replace(name=ROOT_NAME)
        self.log.debug("Repository root is %s", record.nodeRef)
        self._root = record
        return record

    def _is_root_request(self, reference, root: NodeRecord) -> bool:
        norm = normalize_reference(reference)
        return norm in (ROOT_PATH, ROOT_CHILDREN_PATH) or \
               norm == normalize_reference(root.reference)

    async def list_children(self, reference) -> NodeList:
        """
        return the records for the immediate children of the node with the given reference.
        The reference may also be given as ``/app:company_home`` (or ``/app:company_home/*``)
        to list the children of the root.

        :raises MalformedReference:  if the reference is not valid
        :raises ChildListingFailed:  if neither the direct listing nor the path-based lookup
                                     succeeded
        """
        await self.transport.authenticate()
        root = await self.resolve_root()

        if self._is_root_request(reference, root):
            envelope = await self.transport.query_by_path(self.store['scheme'],
                                                          self.store['address'],
                                                          ROOT_CHILDREN_PATH)
            return normalize_nodes(envelope, self.log)

        ref = as_reference(reference)

        direct_error = None
        if self._direct_supported is not False:
            try:
                envelope = await self.transport.list_children_direct(ref)
            except AlfrescoException as ex:
                direct_error = ex
                if self._direct_supported is None:
                    self.log.warning("Direct child listing not available (%s); "
                                     "using path queries", str(ex))
                    self._direct_supported = False
                else:
                    self.log.info("Direct child listing failed for %s; trying path query", ref)
            else:
                self._direct_supported = True
                return normalize_nodes(envelope, self.log)

        try:
            return await self._list_children_by_path(ref, root)
        except RecursionLimitExceeded:
            # a corrupted parent graph is reported as such, whatever the direct call did
            raise
        except AlfrescoException as ex:
            if direct_error:
                self.log.debug("direct listing error for %s was: %s", ref, str(direct_error))
            err = ChildListingFailed(format_reference(ref), ex)
            err.direct_error = direct_error
            raise err from ex

    async def _list_children_by_path(self, ref: NodeReference, root: NodeRecord) -> NodeList:
        resolver = PathResolver(self.transport, root.reference, self.max_depth, self.log)
        segments = await resolver.resolve(ref)
        path = path_expression(segments) + ("/*" if segments else "*")
        self.log.debug("Listing children of %s via path %s", ref, path)
        envelope = await self.transport.query_by_path(ref.scheme, ref.address, path)
        return normalize_nodes(envelope, self.log)

    # conveniences for callers
    parse_reference = staticmethod(parse_reference)
    format_reference = staticmethod(format_reference)
