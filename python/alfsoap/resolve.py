"""
Resolution of a node's hierarchical path by walking up its chain of parents.

The repository's path queries (``PATH:"/app:company_home/cm:Sites/*"``) address nodes by
the prefixed names of their ancestors, while callers navigate by node reference.  The
:py:class:`PathResolver` bridges the two: starting from a node reference, it fetches each
node in turn, finds its parent, and accumulates the names until it reaches the repository
root.  Every step is a round trip to the server, so the walk is bounded by a maximum depth;
a parent chain that revisits a node is treated as a corrupted repository and is reported
the same way as one that is too deep.
"""
import logging, re, unicodedata
from collections.abc import Mapping
from typing import List

from .noderef import NodeReference, as_reference, normalize_reference
from .normalize import extract_rows, build_node_record, find_property, named_values, is_sequence
from .exceptions import (MalformedReference, UnconstructibleRecord, UnresolvableParent,
                         RecursionLimitExceeded, ParentFetchFailed, AlfrescoException)

ROOT_SEGMENT = "app:company_home"
ROOT_NAME = "Company Home"
ROOT_ICON = "company_home"
ROOT_MARKER = "root"
MAX_DEPTH = 50

# unicode categories of the characters allowed in an XML name (NCName)
_NAME_START_CATEGORIES = ("Ll", "Lu", "Lo", "Lt", "Nl")
_NAME_CATEGORIES = _NAME_START_CATEGORIES + ("Lm", "Mc", "Me", "Mn", "Nd")
_NAME_EXTRA_CHARS = "-.·"
_escaped_re = re.compile(r'_x(?:[0-9A-Fa-f]{8}|[0-9A-Fa-f]{4})_')

def _is_name_char(c: str, first: bool) -> bool:
    if c == '_':
        return True
    cat = unicodedata.category(c)
    if first:
        return cat in _NAME_START_CATEGORIES
    return cat in _NAME_CATEGORIES or c in _NAME_EXTRA_CHARS

def iso9075_encode(name: str) -> str:
    """
    encode a node name for use as a segment of a PATH query, following ISO 9075: characters
    that are not allowed in an XML name are replaced by ``_xHHHH_`` escapes (e.g. a space
    becomes ``_x0020_``), or ``_xHHHHHHHH_`` for characters beyond the Basic Multilingual
    Plane.  An underscore that would otherwise be read as the start of an escape is itself
    escaped.
    """
    out = []
    for i, c in enumerate(name):
        if c == '_' and _escaped_re.match(name, i):
            out.append("_x005F_")
        elif _is_name_char(c, i == 0):
            out.append(c)
        elif ord(c) > 0xFFFF:
            out.append("_x%08X_" % ord(c))
        else:
            out.append("_x%04X_" % ord(c))
    return ''.join(out)

def path_expression(segments: List[str]) -> str:
    """
    render a list of path segments as a path, e.g. ``/app:company_home/cm:Sites``
    """
    return "/" + "/".join(segments)

def segment_for(name: str, typ: str) -> str:
    """
    return the path segment for a node with the given name and type.  The ``cm:``
    namespace prefix is used for nodes of a ``cm:`` type; no prefix otherwise.
    """
    prefix = "cm:" if isinstance(typ, str) and typ.startswith("cm:") else ""
    return prefix + iso9075_encode(name)

def find_parent(raw: Mapping):
    """
    find the reference to the parent of the node described by the given raw response
    entry.  The following are tried in order: a ``parent`` field, a ``parentRef`` (or
    ``parentNodeRef``) field, a property whose name mentions ``parent``, and an entry of
    an ``associations`` list whose association type mentions ``parent``.  None is returned
    if no parent can be found.
    """
    candidates = [raw.get('parent'), raw.get('parentRef'), raw.get('parentNodeRef')]

    props = raw.get('properties')
    if isinstance(props, Mapping):
        candidates.append(find_property(props, "parent"))
    candidates.append(find_property(named_values(raw), "parent"))

    assocs = raw.get('associations') or []
    if isinstance(assocs, Mapping):
        assocs = [assocs]
    if is_sequence(assocs):
        for assoc in assocs:
            if not isinstance(assoc, Mapping):
                continue
            atype = assoc.get('associationType') or assoc.get('type') or ''
            if isinstance(atype, str) and 'parent' in atype.lower():
                candidates.append(assoc.get('target') or assoc.get('targetRef') or
                                  assoc.get('nodeRef'))

    for cand in candidates:
        if not cand:
            continue
        try:
            return as_reference(cand)
        except MalformedReference:
            continue
    return None

class PathResolver:
    """
    a resolver of the hierarchical path of repository nodes.  The ``transport`` must provide
    an awaitable ``lookup_node(reference)`` that returns the service response for a single
    node (see :py:class:`~alfsoap.navigate.RepositoryTransport`).
    """

    def __init__(self, transport, root: NodeReference=None, max_depth: int=MAX_DEPTH,
                 log: logging.Logger=None):
        """
        create the resolver

        :param transport:      the source of node descriptions
        :param NodeReference root:  the reference to the repository's root node (Company Home),
                               if known; the walk stops when it reaches this node.
        :param int max_depth:  the maximum number of nodes to fetch for a single resolution
        :param Logger log:     the Logger to use for messages
        """
        if not log:
            log = logging.getLogger("alfsoap.resolve")
        self.log = log
        self.transport = transport
        self.root = root
        self.max_depth = max_depth

    def is_root(self, ref) -> bool:
        """
        return True if the given reference is the known repository root
        """
        return self.root is not None and \
               normalize_reference(ref) == normalize_reference(self.root)

    def _marks_root(self, raw: Mapping, record) -> bool:
        if record.name == ROOT_NAME:
            return True
        bags = [named_values(raw)]
        if isinstance(record.properties, Mapping):
            bags.append(record.properties)
        return any(find_property(bag, "icon") == ROOT_ICON for bag in bags)

    async def _fetch(self, origin: NodeReference, ref: NodeReference):
        try:
            envelope = await self.transport.lookup_node(ref)
        except (AlfrescoException, OSError) as ex:
            raise ParentFetchFailed(str(origin), str(ref), ex) from ex

        rows = [r for r in extract_rows(envelope) if isinstance(r, Mapping)]
        if not rows:
            raise ParentFetchFailed(str(origin), str(ref),
                                    message=f"Node {ref} not found while resolving path of {origin}")
        raw = rows[0]
        try:
            return raw, build_node_record(raw)
        except UnconstructibleRecord as ex:
            raise ParentFetchFailed(str(origin), str(ref), ex) from ex

    async def resolve(self, reference) -> List[str]:
        """
        return the path to the given node as a list of prefixed names, starting from the
        repository root.

        :raises MalformedReference:      if ``reference`` is not a valid node reference
        :raises UnresolvableParent:      if the parent of a node along the way cannot be found
        :raises RecursionLimitExceeded:  if the parent chain is longer than the maximum depth
                                         or contains a cycle
        :raises ParentFetchFailed:       if a node along the way could not be retrieved
        """
        origin = as_reference(reference)
        segments = []
        visited = set()
        current = origin

        depth = 0
        while True:
            if self.is_root(current):
                segments.append(ROOT_SEGMENT)
                break
            if current.id == ROOT_MARKER:
                break

            key = normalize_reference(current)
            if depth >= self.max_depth:
                raise RecursionLimitExceeded(str(origin), self.max_depth)
            if key in visited:
                raise RecursionLimitExceeded(str(origin), self.max_depth,
                                             f"Cycle detected in parent chain of {origin} at {current}")
            visited.add(key)

            raw, record = await self._fetch(origin, current)
            if self._marks_root(raw, record):
                segments.append(ROOT_SEGMENT)
                break

            segments.append(segment_for(record.name, record.type))
            parent = find_parent(raw)
            if parent is None:
                raise UnresolvableParent(str(current))
            self.log.debug("%s: parent of %s is %s", origin, current, parent)

            current = parent
            depth += 1

        segments.reverse()
        return segments

    async def resolve_path(self, reference) -> str:
        """
        return the path to the given node as a string (e.g. ``/app:company_home/cm:Sites``)
        """
        return path_expression(await self.resolve(reference))
