"""
Clients for the Alfresco SOAP web services
"""
from .soap import SoapService
from .auth import AuthenticationService
from .repository import RepositoryService
from .content import ContentService
