"""
This module provides the base class, :py:class:`SoapService`, for clients of the Alfresco
SOAP web services.  It builds SOAP 1.1 request envelopes with ``lxml``, sends them
asynchronously with ``httpx``, and converts the response body into plain nested
dictionaries and lists (see :py:func:`element_to_data`).

Alfresco authenticates service calls (other than those of the AuthenticationService) with a
WS-Security UsernameToken header carrying the user name and, as the password, the session
ticket issued by the AuthenticationService.  Once :py:meth:`SoapService.set_ticket` is called,
the header is added to every request.
"""
import logging
from datetime import datetime, timedelta, timezone
from collections.abc import Mapping
from typing import Any

import httpx
from lxml import etree

from ..exceptions import *

SOAPENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
WSU_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"
PASSWORD_TEXT = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-username-token-profile-1.0" \
                "#PasswordText"
MODEL_NS = "http://www.alfresco.org/ws/model/content/1.0"

TIMESTAMP_TTL = timedelta(minutes=5)

def localname(tag: str) -> str:
    """return the tag name with any namespace removed"""
    return etree.QName(tag).localname

def element_to_data(el) -> Any:
    """
    convert an XML element into plain data: an element with child elements becomes a dict
    keyed by the children's local names (children sharing a name are collected into a
    list); an element without children becomes its text; an element marked ``xsi:nil``
    becomes None.
    """
    if el.get(f"{{{XSI_NS}}}nil") in ("true", "1"):
        return None

    children = [c for c in el if isinstance(c.tag, str)]
    if not children:
        return el.text

    out = {}
    repeated = set()
    for child in children:
        key = localname(child.tag)
        value = element_to_data(child)
        if key not in out:
            out[key] = value
        elif key in repeated:
            out[key].append(value)
        else:
            out[key] = [out[key], value]
            repeated.add(key)
    return out

def _append_value(parent, ns: str, name: str, value, memberns: str):
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _append_value(parent, ns, name, item, memberns)
        return

    el = etree.SubElement(parent, f"{{{ns}}}{name}")
    if isinstance(value, Mapping):
        for key, item in value.items():
            _append_value(el, memberns, key, item, memberns)
    elif isinstance(value, bool):
        el.text = "true" if value else "false"
    else:
        el.text = str(value)

class SoapService:
    """
    a client for one Alfresco SOAP service.  Subclasses provide the service-specific
    operations in terms of :py:meth:`call`.

    The underlying ``httpx.AsyncClient`` may be provided at construction (so that it can
    be shared between services); otherwise, one is created on first use and closed by
    :py:meth:`aclose`.
    """
    service_name = None
    namespace = None

    def __init__(self, baseurl: str, httpclient: httpx.AsyncClient=None, timeout: float=30.0,
                 verify=True, log: logging.Logger=None):
        """
        initialize the service client

        :param str baseurl:    the base URL of the Alfresco server (e.g. http://localhost:8080)
        :param httpclient:     the HTTP client to send requests with
        :param float timeout:  the number of seconds to wait for a response (used only if
                               ``httpclient`` is not provided)
        :param verify:         True to verify the server's certificate with the system CA
                               bundle, or the path to a CA bundle (used only if ``httpclient``
                               is not provided)
        :param Logger log:     the Logger to use for messages
        """
        if not log:
            log = logging.getLogger("alfsoap.soap")
        self.log = log
        self.endpoint = f"{baseurl.rstrip('/')}/alfresco/api/{self.service_name}"
        self._http = httpclient
        self._owns_http = httpclient is None
        self._timeout = timeout
        self._verify = verify
        self.username = None
        self.ticket = None

    async def init(self):
        """
        make sure the HTTP client is ready.  This is called automatically before each request.
        """
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout, verify=self._verify)
            self._owns_http = True

    async def aclose(self):
        """
        close the HTTP client if this service created it
        """
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def set_ticket(self, ticket: str, username: str=None):
        """
        set the session ticket (and user name) to authenticate subsequent requests with
        """
        self.ticket = ticket
        if username:
            self.username = username

    def _security_header(self, header):
        sec = etree.SubElement(header, f"{{{WSSE_NS}}}Security")
        sec.set(f"{{{SOAPENV_NS}}}mustUnderstand", "1")

        now = datetime.now(timezone.utc)
        ts = etree.SubElement(sec, f"{{{WSU_NS}}}Timestamp")
        etree.SubElement(ts, f"{{{WSU_NS}}}Created").text = now.strftime("%Y-%m-%dT%H:%M:%SZ")
        etree.SubElement(ts, f"{{{WSU_NS}}}Expires").text = \
            (now + TIMESTAMP_TTL).strftime("%Y-%m-%dT%H:%M:%SZ")

        token = etree.SubElement(sec, f"{{{WSSE_NS}}}UsernameToken")
        etree.SubElement(token, f"{{{WSSE_NS}}}Username").text = self.username or ""
        pw = etree.SubElement(token, f"{{{WSSE_NS}}}Password")
        pw.set("Type", PASSWORD_TEXT)
        pw.text = self.ticket

    def build_envelope(self, operation: str, args: Mapping=None) -> bytes:
        """
        return the serialized SOAP request envelope for calling the given operation with the
        given arguments.  Arguments are rendered as elements in the service's namespace;
        nested structures as elements in the Alfresco content model namespace.
        """
        nsmap = { "soapenv": SOAPENV_NS, "svc": self.namespace, "cm": MODEL_NS }
        env = etree.Element(f"{{{SOAPENV_NS}}}Envelope", nsmap=nsmap)
        header = etree.SubElement(env, f"{{{SOAPENV_NS}}}Header")
        if self.ticket:
            self._security_header(header)
        body = etree.SubElement(env, f"{{{SOAPENV_NS}}}Body")

        op = etree.SubElement(body, f"{{{self.namespace}}}{operation}")
        for name, value in (args or {}).items():
            _append_value(op, self.namespace, name, value, MODEL_NS)

        return etree.tostring(env, xml_declaration=True, encoding="UTF-8")

    async def call(self, operation: str, args: Mapping=None):
        """
        call an operation of the service and return the content of its response element as
        plain data (e.g. ``{"queryReturn": {...}}``).

        :raises AlfrescoCommError:  if the service could not be reached
        :raises SoapFaultError:     if the service responded with a SOAP fault
        :raises AlfrescoServerError:  if the service responded with some other server error
        :raises AlfrescoClientError:  if the service rejected the request
        :raises UnexpectedAlfrescoResponse:  if the response is not a SOAP envelope
        """
        await self.init()
        content = self.build_envelope(operation, args)
        headers = { "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": f'"{self.namespace}/{operation}"' }

        self.log.debug("Calling %s.%s", self.service_name, operation)
        try:
            resp = await self._http.post(self.endpoint, content=content, headers=headers)
        except httpx.RequestError as ex:
            raise AlfrescoCommError(f"Failed to call {self.service_name}.{operation}: {str(ex)}",
                                    self.endpoint) from ex

        return self.parse_response(operation, resp)

    def parse_response(self, operation: str, resp: httpx.Response):
        """
        extract the result data from an HTTP response to a SOAP request
        """
        root = None
        if resp.content:
            try:
                root = etree.fromstring(resp.content)
            except etree.XMLSyntaxError as ex:
                if resp.status_code < 400:
                    raise UnexpectedAlfrescoResponse(f"{self.service_name}.{operation}: "
                                                     f"Server returned unparseable XML",
                                                     self.endpoint, resp.text,
                                                     resp.status_code) from ex

        body = root.find(f"{{{SOAPENV_NS}}}Body") if root is not None else None
        fault = body.find(f"{{{SOAPENV_NS}}}Fault") if body is not None else None
        if fault is not None:
            raise SoapFaultError(fault.findtext("faultstring"), fault.findtext("faultcode"),
                                 self.endpoint, resp.status_code, resp.text)

        if resp.status_code >= 500:
            raise AlfrescoServerError(resp.status_code, self.endpoint, resp.text)
        if resp.status_code >= 400:
            raise AlfrescoClientError(f"{self.service_name}.{operation} request rejected: "
                                      f"{resp.reason_phrase} ({resp.status_code})",
                                      resp.status_code, self.endpoint, resp.text)
        if body is None:
            raise UnexpectedAlfrescoResponse(f"{self.service_name}.{operation}: response is not "
                                             "a SOAP envelope", self.endpoint, resp.text,
                                             resp.status_code)

        result = next((c for c in body if isinstance(c.tag, str)), None)
        if result is None:
            return {}
        data = element_to_data(result)
        return data if data is not None else {}
