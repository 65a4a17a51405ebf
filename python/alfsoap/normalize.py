"""
Conversion of the variously shaped payloads returned by the repository services into
uniform node records.

Different server versions (and different operations) return the nodes of a result in
different envelopes: a bare list, a ``resultSet`` with ``rows``, a single ``...Return``
element, or a generic ``nodes`` list.  Individual entries may carry their node reference
directly or only as a bag of columns (``{name, value}`` pairs) whose names carry namespace
URI prefixes.  :py:func:`extract_rows` deals with the envelope; :py:func:`build_node_record`
with the entries; :py:func:`normalize_nodes` combines the two.
"""
import logging, re
from collections import namedtuple
from collections.abc import Mapping, Sequence
from typing import List

from .noderef import NodeReference, SEPARATOR, as_reference, format_reference, parse_reference
from .exceptions import MalformedReference, UnconstructibleRecord

_log = logging.getLogger("alfsoap.normalize")

UNKNOWN_NAME = "Unknown"
UNKNOWN_TYPE = "unknown"

# column names carrying the parts of a node reference (matched as substrings)
STORE_PROTOCOL_COL = "store-protocol"
STORE_IDENTIFIER_COL = "store-identifier"
NODE_UUID_COL = "node-uuid"
NAME_NEEDLES = ("}name", "cm:name")

RESULT_KEYS = ("queryReturn", "getReturn", "queryChildrenReturn", "queryParentsReturn", "result")
LIST_KEYS = ("items", "nodes", "children")

NAMESPACE_PREFIXES = {
    "http://www.alfresco.org/model/content/1.0":     "cm",
    "http://www.alfresco.org/model/system/1.0":      "sys",
    "http://www.alfresco.org/model/application/1.0": "app",
    "http://www.alfresco.org/model/site/1.0":        "st",
}
_qname_re = re.compile(r'^\{([^\}]*)\}(.+)$')

class NodeRecord(namedtuple('NodeRecord', "reference name type properties")):
    """
    a normalized description of a repository node
    """
    __slots__ = ()

    @property
    def nodeRef(self):
        """the node's reference in string form"""
        return format_reference(self.reference)

    def to_dict(self):
        """
        return this record as a JSON-serializable dictionary
        """
        return { "nodeRef": self.nodeRef, "name": self.name, "type": self.type,
                 "properties": dict(self.properties) }

class NodeList(list):
    """
    a list of :py:class:`NodeRecord` instances produced from a service response.  The
    ``dropped`` attribute lists the raw response entries that could not be converted into
    records.
    """
    def __init__(self, records=(), dropped=None):
        super(NodeList, self).__init__(records)
        self.dropped = list(dropped) if dropped else []

def is_sequence(value):
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))

def _as_list(value) -> List:
    if value is None:
        return []
    if is_sequence(value):
        return list(value)
    return [value]

def _result_set(envelope: Mapping):
    if 'resultSet' in envelope:
        return envelope
    for key in RESULT_KEYS:
        inner = envelope.get(key)
        if isinstance(inner, Mapping) and 'resultSet' in inner:
            return inner
    return None

def extract_rows(envelope) -> List:
    """
    return the sequence of per-node entries found in a service response envelope,
    regardless of its shape.  An envelope with no recognizable shape yields an empty list.
    """
    if envelope is None:
        return []
    if is_sequence(envelope):
        return list(envelope)
    if not isinstance(envelope, Mapping):
        return []

    holder = _result_set(envelope)
    if holder is not None:
        rs = holder.get('resultSet')
        if isinstance(rs, Mapping):
            return _as_list(rs.get('rows'))
        return []

    for key in RESULT_KEYS:
        if key in envelope:
            return _as_list(envelope[key])

    for key in LIST_KEYS:
        if key in envelope:
            return _as_list(envelope[key])

    return []

def short_qname(qname: str) -> str:
    """
    convert a fully qualified name of the form ``{namespace-uri}localname`` into its
    prefixed form (e.g. ``cm:folder``) for the well-known Alfresco namespaces.  Other names
    are returned unchanged.
    """
    if not isinstance(qname, str):
        return qname
    m = _qname_re.match(qname)
    if m and m.group(1) in NAMESPACE_PREFIXES:
        return f"{NAMESPACE_PREFIXES[m.group(1)]}:{m.group(2)}"
    return qname

def named_values(raw: Mapping) -> List:
    # a list of {name, value} pairs, from either the columns or a list-valued properties field
    out = []
    for key in ('columns', 'properties'):
        items = raw.get(key)
        if isinstance(items, Mapping) and 'name' in items:
            items = [items]
        if is_sequence(items):
            out.extend(i for i in items if isinstance(i, Mapping) and i.get('name'))
    return out

def _has_bag(raw: Mapping) -> bool:
    return bool(named_values(raw)) or isinstance(raw.get('properties'), Mapping)

def find_property(props, needle: str):
    """
    return the value of the first property whose name contains the given substring, or
    None if there is none.  Properties that are empty or only whitespace are skipped.
    ``props`` can be a mapping or a list of ``{name, value}`` pairs.
    """
    if isinstance(props, Mapping):
        props = [{"name": k, "value": v} for k, v in props.items()]
    for nv in props:
        name = nv.get('name')
        if not isinstance(name, str) or needle not in name:
            continue
        value = nv.get('value')
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None

def properties_from_bag(nvs: List) -> Mapping:
    """
    fold a list of ``{name, value}`` pairs into a dictionary (last one wins)
    """
    out = {}
    for nv in nvs:
        out[nv['name']] = nv.get('value')
    return out

def _direct_reference(raw: Mapping):
    for key in ('nodeRef', 'reference'):
        value = raw.get(key)
        if value:
            try:
                return as_reference(value)
            except MalformedReference as ex:
                _log.debug("ignoring unusable %s in response entry: %s", key, str(ex))
    return None

def _reference_from_bag(raw: Mapping, nvs: List):
    # the columns can come as a list of {name, value} pairs or as a mapping
    bags = [nvs]
    if isinstance(raw.get('properties'), Mapping):
        bags.append(raw['properties'])

    for bag in bags:
        protocol = find_property(bag, STORE_PROTOCOL_COL)
        identifier = find_property(bag, STORE_IDENTIFIER_COL)
        uuid = find_property(bag, NODE_UUID_COL)
        if not (protocol and identifier and uuid):
            continue

        parts = (str(protocol).strip(), str(identifier).strip(), str(uuid).strip())
        try:
            ref = parse_reference(f"{parts[0]}{SEPARATOR}{parts[1]}/{parts[2]}")
        except MalformedReference as ex:
            _log.debug("ignoring unusable reference columns in response entry: %s", str(ex))
            continue

        # a "/" in the address would shift the parts
        if tuple(ref) == parts:
            return ref
        _log.debug("ignoring unusable reference columns in response entry: %s", parts)
    return None

def resolve_name(raw: Mapping, reference: NodeReference=None, properties: Mapping=None) -> str:
    """
    determine the display name for a node, trying in order the explicit ``name`` field,
    a name property, and the last segment of the node's reference; if all fail, "Unknown"
    is returned.
    """
    name = raw.get('name')
    if isinstance(name, str) and name.strip():
        return name

    bags = [named_values(raw)]
    if properties:
        bags.append(properties)
    for bag in bags:
        for needle in NAME_NEEDLES:
            name = find_property(bag, needle)
            if name:
                return str(name)
    if isinstance(properties, Mapping) and str(properties.get('name') or '').strip():
        return str(properties['name'])

    if reference is not None:
        last = format_reference(reference).rstrip('/').split('/')[-1]
        if last:
            return last
    return UNKNOWN_NAME

def _resolve_type(raw: Mapping) -> str:
    typ = raw.get('type')
    if not typ and isinstance(raw.get('node'), Mapping):
        typ = raw['node'].get('type')
    if isinstance(typ, str) and typ:
        return short_qname(typ)
    return UNKNOWN_TYPE

def build_node_record(raw: Mapping) -> NodeRecord:
    """
    build a :py:class:`NodeRecord` from one entry of a service response.

    :raises UnconstructibleRecord:  if no node reference can be found in or reconstructed
                                    from the entry
    """
    if not isinstance(raw, Mapping):
        raise UnconstructibleRecord("Response entry is not a structure", raw)

    nvs = named_values(raw)
    reference = _direct_reference(raw) or _reference_from_bag(raw, nvs)
    if reference is None:
        raise UnconstructibleRecord("No node reference in response entry", raw)

    props = raw.get('properties')
    if isinstance(props, Mapping):
        properties = dict(props)
    else:
        properties = properties_from_bag(nvs)

    return NodeRecord(reference, resolve_name(raw, reference, properties), _resolve_type(raw),
                      properties)

def normalize_nodes(envelope, log: logging.Logger=None) -> NodeList:
    """
    extract the node records from a service response envelope.  Entries that carry neither
    a node reference nor a property bag, or from which a reference cannot be reconstructed,
    are left out of the list and recorded in its ``dropped`` attribute.
    """
    if not log:
        log = _log

    records = []
    dropped = []
    for raw in extract_rows(envelope):
        if not isinstance(raw, Mapping) or not (raw.get('nodeRef') or raw.get('reference') or
                                                _has_bag(raw)):
            dropped.append(raw)
            continue
        try:
            records.append(build_node_record(raw))
        except UnconstructibleRecord:
            dropped.append(raw)

    if dropped:
        log.debug("Dropped %d unresolvable entr%s from response", len(dropped),
                  "y" if len(dropped) == 1 else "ies")
    return NodeList(records, dropped)
