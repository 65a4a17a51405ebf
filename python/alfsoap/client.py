"""
This module provides the main client class, :py:class:`AlfrescoClient`, for accessing an
Alfresco repository through its SOAP web services.  It manages the session ticket and the
HTTP connection shared by the service clients in :py:mod:`alfsoap.clients`, and it
implements the :py:class:`~alfsoap.navigate.RepositoryTransport` interface so that folder
navigation (:py:meth:`get_company_home`, :py:meth:`get_children`) can be delegated to a
:py:class:`~alfsoap.navigate.Navigator`.

Typical use::

    async with AlfrescoClient(config) as cli:
        home = await cli.get_company_home()
        for node in await cli.get_children(home.nodeRef):
            print(node.name, node.type)
"""
import base64, logging, re
from collections import namedtuple
from collections.abc import Mapping

import httpx

from . import config as cfgmod
from .noderef import NodeReference, as_reference
from .normalize import NodeRecord, NodeList, normalize_nodes, extract_rows, find_property, named_values
from .navigate import RepositoryTransport, Navigator
from .resolve import find_parent
from .clients import AuthenticationService, RepositoryService, ContentService
from .exceptions import AlfrescoClientError, UnexpectedAlfrescoResponse

ContentData = namedtuple('ContentData', "buffer filename content_type size")

DEF_FILENAME = "download"
DEF_CONTENT_TYPE = "application/octet-stream"
_mimetype_re = re.compile(r'mimetype=([^|]+)')

class AlfrescoClient(RepositoryTransport):
    """
    a client for an Alfresco repository.  See :py:mod:`alfsoap.config` for the
    configuration parameters it accepts.

    The client authenticates on first need and reuses its session ticket thereafter.  The
    HTTP connection is likewise opened on first use; call :py:meth:`aclose` (or use the
    client as an async context manager) to release it.

    :raises ConfigurationException:  if required configuration parameters are missing or
                                     invalid
    """

    def __init__(self, config: Mapping, log: logging.Logger=None,
                 httpclient: httpx.AsyncClient=None):
        """
        initialize the client

        :param dict config:  the configuration parameters for this client
        :param Logger log:   the Logger object to use for messages from this client.  If not
                             provided, a default logger with the name "alfsoap" will be used.
        :param httpclient:   the HTTP client to send requests with; if not provided, one will
                             be created (according to the configuration) on first use.
        """
        if not log:
            log = logging.getLogger("alfsoap")
        self.log = log
        self.cfg = cfgmod.validate(config)
        self.store = self.cfg['store']
        self.ticket = None

        self._http = httpclient
        self._owns_http = httpclient is None
        self._auth = None
        self._repo = None
        self._content = None

        self.navigator = Navigator(self, self.store, self.cfg['max_path_depth'],
                                   self.log.getChild("navigate"))

    def _ensure_services(self):
        if self._auth is None:
            if self._http is None:
                self._http = httpx.AsyncClient(timeout=self.cfg['timeout'],
                                               verify=self.cfg.get('ca_bundle') or True)
                self._owns_http = True
            url = self.cfg['url']
            self._auth = AuthenticationService(url, self._http, log=self.log.getChild("auth"))
            self._repo = RepositoryService(url, self._http, log=self.log.getChild("repository"))
            self._content = ContentService(url, self._http, log=self.log.getChild("content"))
            if self.ticket:
                self._set_ticket(self.ticket)

    def _set_ticket(self, ticket):
        self.ticket = ticket
        for svc in (self._repo, self._content):
            if svc:
                svc.set_ticket(ticket, self.cfg['username'])

    @property
    def authentication(self) -> AuthenticationService:
        """the client for the AuthenticationService"""
        self._ensure_services()
        return self._auth

    @property
    def repository(self) -> RepositoryService:
        """the client for the RepositoryService"""
        self._ensure_services()
        return self._repo

    @property
    def content(self) -> ContentService:
        """the client for the ContentService"""
        self._ensure_services()
        return self._content

    async def aclose(self):
        """
        close the connection to the server
        """
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
        self._auth = self._repo = self._content = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def authenticate(self, force: bool=False) -> str:
        """
        start a session with the repository (unless one has already been started) and return
        its ticket.

        :param bool force:  start a new session even if one was already started
        :raises AuthenticationFailure:  if the configured credentials are not accepted
        """
        if self.ticket and not force:
            return self.ticket
        ticket = await self.authentication.login(self.cfg['username'], self.cfg['password'])
        self._set_ticket(ticket)
        return ticket

    async def logout(self):
        """
        end the current session, if there is one
        """
        if self.ticket:
            try:
                await self.authentication.logout(self.ticket)
            finally:
                self.ticket = None
                for svc in (self._repo, self._content):
                    if svc:
                        svc.set_ticket(None)

    # RepositoryTransport interface

    async def lookup_node(self, reference: NodeReference):
        """
        return the service's description of a node.  If the description does not identify
        the node's parent, the parents are looked up and attached to it as ``associations``.
        """
        await self.authenticate()
        ref = as_reference(reference)
        result = await self.repository.get(ref)

        rows = extract_rows(result)
        if rows and isinstance(rows[0], dict) and find_parent(rows[0]) is None:
            parents = normalize_nodes(await self.repository.query_parents(ref), self.log)
            rows[0]['associations'] = [ { "associationType": "parent", "target": p.nodeRef }
                                        for p in parents ]
        return result

    async def list_children_direct(self, reference: NodeReference):
        await self.authenticate()
        return await self.repository.query_children(as_reference(reference))

    async def query_by_path(self, scheme: str, address: str, path: str):
        await self.authenticate()
        return await self.repository.query({ "scheme": scheme, "address": address },
                                           f'PATH:"{path}"')

    # conveniences

    async def get_stores(self):
        """
        return the list of stores in the repository
        """
        await self.authenticate()
        return await self.repository.get_stores()

    async def get_node(self, reference) -> NodeRecord:
        """
        return the record describing the node with the given reference

        :raises MalformedReference:   if the reference is not valid
        :raises AlfrescoClientError:  if the node does not exist
        """
        ref = as_reference(reference)
        await self.authenticate()
        nodes = normalize_nodes(await self.repository.get(ref), self.log)
        if not nodes:
            raise AlfrescoClientError(f"Node not found for nodeRef: {ref}", 404,
                                      self.repository.endpoint)
        return nodes[0]

    async def query(self, statement: str, language: str="lucene",
                    include_metadata: bool=False) -> NodeList:
        """
        run a query against the configured store and return the matching nodes
        """
        await self.authenticate()
        return normalize_nodes(await self.repository.query(self.store, statement, language,
                                                           include_metadata), self.log)

    async def search(self, term: str, include_metadata: bool=False) -> NodeList:
        """
        run a Lucene query against the configured store
        """
        return await self.query(term, include_metadata=include_metadata)

    async def get_parents(self, reference) -> NodeList:
        """
        return the parents of the node with the given reference
        """
        ref = as_reference(reference)
        await self.authenticate()
        return normalize_nodes(await self.repository.query_parents(ref), self.log)

    async def get_company_home(self) -> NodeRecord:
        """
        return the record for the repository's root folder, Company Home
        """
        return await self.navigator.resolve_root()

    async def get_children(self, reference) -> NodeList:
        """
        return the records for the children of the node with the given reference
        """
        return await self.navigator.list_children(reference)

    async def read_content(self, reference, property: str=None) -> ContentData:
        """
        retrieve the content of a document node

        :raises UnexpectedAlfrescoResponse:  if the response does not include the content
                     itself (e.g. because the server only provides a download URL)
        """
        ref = as_reference(reference)
        await self.authenticate()
        self.log.debug("Retrieving content for %s", ref)

        filename = DEF_FILENAME
        content_type = DEF_CONTENT_TYPE
        node = extract_rows(await self.repository.get(ref))
        if node and isinstance(node[0], Mapping):
            bag = named_values(node[0])
            filename = find_property(bag, "}name") or filename
            contprop = find_property(bag, "}content")
            if isinstance(contprop, str):
                m = _mimetype_re.search(contprop)
                if m:
                    content_type = m.group(1)

        result = await self.content.read(ref, property)
        content = None
        if isinstance(result, Mapping):
            content = result.get('readReturn') or result.get('content')
        if isinstance(content, list):
            content = content[0] if content else None
        if not isinstance(content, Mapping):
            raise UnexpectedAlfrescoResponse(f"No content found in response for {ref}",
                                             self.content.endpoint)

        data = content.get('data') or content.get('content')
        if not data:
            if content.get('url'):
                raise UnexpectedAlfrescoResponse(f"ContentService returned URL instead of content "
                                                 f"data for {ref}", self.content.endpoint)
            raise UnexpectedAlfrescoResponse(f"No content data found in response for {ref}",
                                             self.content.endpoint)
        try:
            buffer = base64.b64decode(data)
        except ValueError as ex:
            raise UnexpectedAlfrescoResponse(f"Undecodable content data for {ref}",
                                             self.content.endpoint) from ex

        fmt = content.get('format')
        if isinstance(fmt, Mapping) and fmt.get('mimetype'):
            content_type = fmt['mimetype']
        return ContentData(buffer, filename, content_type, len(buffer))

    async def write_content(self, reference, content, property: str=None, format: Mapping=None):
        """
        replace the content of a document node.  ``content`` can be bytes (sent base64-encoded)
        or a str; ``format`` gives its ``mimetype`` and ``encoding``.

        :return:  the ContentService's description of the written content
        """
        ref = as_reference(reference)
        await self.authenticate()
        self.log.debug("Writing content for %s", ref)
        return await self.content.write(ref, content, property, format)

    async def clear_content(self, reference, property: str=None):
        """
        remove the content of a document node

        :return:  the ContentService's description of the cleared content
        """
        ref = as_reference(reference)
        await self.authenticate()
        self.log.debug("Clearing content for %s", ref)
        return await self.content.clear(ref, property)
