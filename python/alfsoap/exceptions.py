"""
Exceptions raised by the Alfresco SOAP client.

Failures of a service call are reported as :py:class:`AlfrescoServiceError` subclasses,
distinguished by where the call broke down: on the way to the server
(:py:class:`AlfrescoCommError`), at the server (:py:class:`AlfrescoServerError`, including
SOAP faults), or because the server refused the request (:py:class:`AlfrescoClientError`).
Problems interpreting or following node references are :py:class:`NodeReferenceError`
subclasses.
"""

class AlfrescoException(Exception):
    """
    the base class for the errors raised while talking to the repository or interpreting
    its replies (configuration problems are reported separately, as
    :py:class:`~alfsoap.config.ConfigurationException`)
    """

    def __init__(self, message: str=None):
        if not message:
            message = "Unspecified problem accessing the Alfresco repository"
        super(AlfrescoException, self).__init__(message)


class AlfrescoServiceError(AlfrescoException):
    """
    a failed call to one of the repository's SOAP services (RepositoryService,
    ContentService, etc.).  The ``ep`` property holds the URL of the service endpoint,
    ``code`` the HTTP status of the reply (0 if there was none), and ``response`` the body
    of the reply.
    """

    def __init__(self, message: str=None, ep: str=None, code: int=0, resptext: str=None):
        """
        create the exception

        :param str message:  an explanation of the cause of the error
        :param str ep:       the URL of the service endpoint that was called
        :param int code:     the HTTP status of the reply, if the service replied
        :param str resptext: the body of the reply (usually a SOAP envelope), if the service
                             replied
        """
        if not message:
            message = "Alfresco SOAP call failed"
            if ep:
                message += f" at {ep}"
            if code:
                message += f" ({str(code)})"
            if resptext:
                message += f"; reply:\n{resptext}"
        super(AlfrescoServiceError, self).__init__(message)
        self.ep = ep
        self.code = code or 0
        self.response = resptext


class AlfrescoCommError(AlfrescoServiceError):
    """
    the SOAP request never got a reply: the connection was refused or dropped, timed out,
    or the host could not be found.  ``code`` is always 0.
    """
    def __init__(self, message: str=None, ep: str=None):
        if not message:
            message = "Could not reach Alfresco SOAP service"
            if ep:
                message += f" at {ep}"
        super(AlfrescoCommError, self).__init__(message, ep)


class AlfrescoServerError(AlfrescoServiceError):
    """
    the service failed while handling the request.  Alfresco returns its SOAP faults with
    HTTP status 500, so these arrive as the :py:class:`SoapFaultError` subclass; other
    statuses of 500 or more (e.g. from a proxy in front of the server) arrive as this class.
    """

    def __init__(self, code: int=0, ep: str=None, resptext: str=None, message: str=None):
        if not message:
            message = "Alfresco SOAP service failed"
            if ep:
                message += f" at {ep}"
            if code:
                message += f": HTTP code: {str(code)}"
        super(AlfrescoServerError, self).__init__(message, ep, code, resptext)


class UnexpectedAlfrescoResponse(AlfrescoServerError):
    """
    the service replied, usually with a success status, but the reply cannot be used: it is
    not XML, has no SOAP ``Body``, or lacks the data the operation should return (such as a
    session ticket or the content bytes).
    """

    def __init__(self, message: str=None, ep: str=None, resptext: str=None, code: int=0):
        if not message:
            message = "Unusable reply from Alfresco SOAP service"
            if ep:
                message += f" at {ep}"
            if resptext:
                message += f"; reply:\n{resptext}"
        super(UnexpectedAlfrescoResponse, self).__init__(code, ep, resptext, message)


class SoapFaultError(AlfrescoServerError):
    """
    an error indicating that the service answered a request with a SOAP Fault.  The fault
    code and string are available as the ``faultcode`` and ``faultstring`` properties.
    """

    def __init__(self, faultstring: str=None, faultcode: str=None, ep: str=None, code: int=500,
                 resptext: str=None):
        message = "SOAP fault"
        if ep:
            message += f" from {ep}"
        if faultcode:
            message += f" ({faultcode})"
        if faultstring:
            message += f": {faultstring}"
        super(SoapFaultError, self).__init__(code, ep, resptext, message)
        self.faultcode = faultcode
        self.faultstring = faultstring


class AlfrescoClientError(AlfrescoServiceError):
    """
    the service rejected the request with an HTTP status from 400 to 499 (without a SOAP
    fault), e.g. because the endpoint does not exist or access was denied.  It is also
    raised for a lookup that returns no node, with ``code`` set to 404.
    """

    def __init__(self, message: str=None, code: int=0, ep: str=None, resptext: str=None):
        if not message:
            message = "Alfresco SOAP service rejected the request"
            if code:
                message += f" ({str(code)})"
            if ep:
                message += f" at {ep}"
        super(AlfrescoClientError, self).__init__(message, ep, code, resptext)


class AuthenticationFailure(AlfrescoClientError):
    """
    an exception indicating that the repository did not accept the credentials presented
    to start a session.
    """
    def __init__(self, message: str=None, ep: str=None, code: int=401):
        if not message:
            message = "Invalid authentication credentials"
        super(AuthenticationFailure, self).__init__(message, code, ep)


class NodeReferenceError(AlfrescoException):
    """
    a base class for problems interpreting or resolving a node reference.  The offending
    reference is available via the ``reference`` property.
    """
    def __init__(self, reference=None, message: str=None):
        if not message:
            message = "Problem resolving node reference"
            if reference:
                message += f": {reference}"
        super(NodeReferenceError, self).__init__(message)
        self.reference = reference


class MalformedReference(NodeReferenceError, ValueError):
    """
    the given string is not a well-formed node reference of the form ``scheme://address/id``.
    """
    def __init__(self, reference=None, message: str=None):
        if not message:
            message = f"Malformed node reference: {reference!r}"
        super(MalformedReference, self).__init__(reference, message)


class RootNotFound(NodeReferenceError):
    """
    the lookup of the repository root (Company Home) returned nothing that could be
    interpreted as a node.
    """
    def __init__(self, reference=None, message: str=None):
        if not message:
            message = "Repository root node not found"
            if reference:
                message += f" at {reference}"
        super(RootNotFound, self).__init__(reference, message)


class UnresolvableParent(NodeReferenceError):
    """
    none of the strategies for locating a node's parent succeeded.
    """
    def __init__(self, reference=None, message: str=None):
        if not message:
            message = f"Unable to determine parent of node: {reference}"
        super(UnresolvableParent, self).__init__(reference, message)


class RecursionLimitExceeded(NodeReferenceError):
    """
    resolving the path of a node required walking more ancestors than allowed, or walked
    into a cycle; either indicates a corrupted parent graph.
    """
    def __init__(self, reference=None, limit: int=0, message: str=None):
        if not message:
            message = f"Path resolution exceeded depth limit ({limit}) for {reference}"
        super(RecursionLimitExceeded, self).__init__(reference, message)
        self.limit = limit


class ParentFetchFailed(NodeReferenceError):
    """
    the lookup of a node failed while walking up the parent chain of another node.  The
    reference being resolved is given by ``reference``, the one whose lookup failed by
    ``failed_reference``.
    """
    def __init__(self, reference=None, failed_reference=None, cause: Exception=None,
                 message: str=None):
        if not message:
            message = f"Failed to fetch {failed_reference or reference} while resolving path of " \
                      f"{reference}"
            if cause:
                message += f": {str(cause)}"
        super(ParentFetchFailed, self).__init__(reference, message)
        self.failed_reference = failed_reference
        self.cause = cause


class ChildListingFailed(NodeReferenceError):
    """
    neither the direct child listing nor the path-based fallback could list the children
    of a node.  ``cause`` holds the innermost failure.
    """
    def __init__(self, reference=None, cause: Exception=None, message: str=None):
        if not message:
            message = f"Failed to get children for nodeRef {reference}"
            if cause:
                message += f": {str(cause)}"
        super(ChildListingFailed, self).__init__(reference, message)
        self.cause = cause


class UnconstructibleRecord(AlfrescoException):
    """
    a raw response entry does not contain enough information to build a node record.
    """
    def __init__(self, message: str=None, raw=None):
        if not message:
            message = "Unable to construct node record from response entry"
        super(UnconstructibleRecord, self).__init__(message)
        self.raw = raw
