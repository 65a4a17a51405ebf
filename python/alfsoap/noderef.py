"""
Parsing and formatting of node references.

A node reference identifies an item in the repository by three parts: the store scheme
(e.g. ``workspace``), the store address (e.g. ``SpacesStore``), and the item's id (its
uuid).  Its canonical string form is ``scheme://address/id``.
"""
from collections import namedtuple
from collections.abc import Mapping

from .exceptions import MalformedReference

SEPARATOR = "://"

class NodeReference(namedtuple('NodeReference', "scheme address id")):
    """
    an immutable node reference.  Use :py:func:`parse_reference` to create one from its
    string form.
    """
    __slots__ = ()

    def __str__(self):
        return format_reference(self)

    @property
    def store(self):
        """the store this node lives in, as a SOAP ``Store`` mapping"""
        return { "scheme": self.scheme, "address": self.address }

    def to_soap(self):
        """
        return this reference as the ``Reference`` structure used in SOAP requests
        """
        return { "store": self.store, "uuid": self.id }

def parse_reference(raw: str) -> NodeReference:
    """
    parse a node reference from its string form, ``scheme://address/id``.  Surrounding
    whitespace is ignored.

    :raises MalformedReference:  if the string is not of the expected form or any of its
                                 three parts is empty.
    """
    if not isinstance(raw, str):
        raise MalformedReference(raw)

    text = raw.strip()
    scheme, sep, rest = text.partition(SEPARATOR)
    if not sep:
        raise MalformedReference(raw, f"Invalid nodeRef (missing {SEPARATOR}): {raw!r}")

    address, sep, id = rest.partition('/')
    if not sep:
        raise MalformedReference(raw, f"Invalid nodeRef format (missing id): {raw!r}")
    if not scheme or not address or not id:
        raise MalformedReference(raw, f"Invalid nodeRef format (empty part): {raw!r}")
    if SEPARATOR in id:
        raise MalformedReference(raw, f"Invalid nodeRef format (id contains {SEPARATOR}): {raw!r}")

    return NodeReference(scheme, address, id)

def format_reference(ref: NodeReference) -> str:
    """
    render a node reference into its canonical string form
    """
    return f"{ref.scheme}{SEPARATOR}{ref.address}/{ref.id}"

def normalize_reference(raw) -> str:
    """
    return a form of the given reference that is suitable for comparing for equality: the
    string form, whitespace-trimmed and lower-cased.  None yields an empty string.
    """
    if raw is None:
        return ""
    if isinstance(raw, NodeReference):
        raw = format_reference(raw)
    return str(raw).strip().lower()

def as_reference(value) -> NodeReference:
    """
    coerce a value into a :py:class:`NodeReference`.  Accepted are NodeReference instances,
    strings in canonical form, and ``Reference`` mappings as found in SOAP responses
    (``{"store": {"scheme": ..., "address": ...}, "uuid": ...}``).

    :raises MalformedReference:  if the value cannot be interpreted as a reference
    """
    if isinstance(value, NodeReference):
        return value
    if isinstance(value, str):
        return parse_reference(value)

    if isinstance(value, Mapping):
        if isinstance(value.get('nodeRef'), str):
            return parse_reference(value['nodeRef'])

        store = value.get('store')
        id = value.get('uuid') or value.get('id')
        if isinstance(store, str):
            # store given in "scheme://address" form
            scheme, sep, address = store.partition(SEPARATOR)
            store = { "scheme": scheme, "address": address } if sep else None
        if isinstance(store, Mapping) and isinstance(id, str):
            scheme = store.get('scheme')
            address = store.get('address')
            if scheme and address and id:
                return parse_reference(f"{scheme}{SEPARATOR}{address}/{id}")

    raise MalformedReference(value, f"Not interpretable as a node reference: {value!r}")
