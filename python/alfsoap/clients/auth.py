"""
A client for the Alfresco AuthenticationService, which issues the session tickets used to
authenticate calls to the other services.
"""
from .soap import SoapService
from ..exceptions import AuthenticationFailure, SoapFaultError, UnexpectedAlfrescoResponse

class AuthenticationService(SoapService):
    """
    a client for starting and ending sessions with the repository
    """
    service_name = "AuthenticationService"
    namespace = "http://www.alfresco.org/ws/service/authentication/1.0"

    async def login(self, username: str, password: str) -> str:
        """
        start a session and return its ticket

        :raises AuthenticationFailure:  if the repository rejects the credentials
        """
        try:
            result = await self.call('startSession', { "username": username, "password": password })
        except SoapFaultError as ex:
            raise AuthenticationFailure(f"Login failed for {username}: {ex.faultstring or str(ex)}",
                                        self.endpoint) from ex

        ret = result.get('startSessionReturn') if isinstance(result, dict) else None
        ticket = ret.get('ticket') if isinstance(ret, dict) else None
        if not ticket:
            raise UnexpectedAlfrescoResponse("Authentication response contains no ticket",
                                             self.endpoint)
        self.log.info("Started repository session for %s", username)
        return ticket

    async def logout(self, ticket: str):
        """
        end the session identified by the given ticket
        """
        return await self.call('endSession', { "ticket": ticket })
