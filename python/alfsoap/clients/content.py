"""
A client for the Alfresco ContentService, which reads, writes, and clears the content of
document nodes.
"""
import base64
from collections.abc import Mapping

from .soap import SoapService
from ..noderef import NodeReference

CONTENT_PROP = "{http://www.alfresco.org/model/content/1.0}content"
DEF_FORMAT = { "mimetype": "application/octet-stream", "encoding": "UTF-8" }

class ContentService(SoapService):
    """
    a client for reading and updating node content
    """
    service_name = "ContentService"
    namespace = "http://www.alfresco.org/ws/service/content/1.0"

    async def read(self, ref: NodeReference, property: str=None):
        """
        return the description of the content of a node, as held by one of its properties
        (by default, ``cm:content``).
        """
        return await self.call('read', {
            "items": { "nodes": [ ref.to_soap() ] },
            "property": property or CONTENT_PROP
        })

    async def write(self, ref: NodeReference, content, property: str=None,
                    format: Mapping=None):
        """
        replace the content held by one of a node's properties (by default, ``cm:content``).

        :param NodeReference ref:  the node to update
        :param content:   the new content; bytes are sent base64-encoded, while a str is sent
                          as is.
        :param str property:  the name of the content property to write to
        :param Mapping format:  the ``mimetype`` and ``encoding`` of the content; if not
                          given, it is sent as UTF-8 ``application/octet-stream``.
        """
        if isinstance(content, (bytes, bytearray)):
            content = base64.b64encode(content).decode('ascii')
        return await self.call('write', {
            "node": ref.to_soap(),
            "property": property or CONTENT_PROP,
            "content": content,
            "format": format or DEF_FORMAT
        })

    async def clear(self, ref: NodeReference, property: str=None):
        """
        remove the content held by one of a node's properties (by default, ``cm:content``).
        """
        return await self.call('clear', {
            "items": { "nodes": [ ref.to_soap() ] },
            "property": property or CONTENT_PROP
        })
