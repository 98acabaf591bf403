"""Salesforce API client for SOQL queries and object introspection."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse
from xml.etree import ElementTree
from xml.sax.saxutils import escape

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...core.config import read_env
from ...exceptions import AuthenticationError, SalesforceAPIError

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_URL = "https://login.salesforce.com"
DEFAULT_API_VERSION = "58.0"

_SOAP_NS = {
    "soapenv": "http://schemas.xmlsoap.org/soap/envelope/",
    "sf": "urn:partner.soap.sforce.com",
}

_LOGIN_ENVELOPE = """<?xml version="1.0" encoding="utf-8" ?>
<env:Envelope xmlns:xsd="http://www.w3.org/2001/XMLSchema"
    xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
    xmlns:env="http://schemas.xmlsoap.org/soap/envelope/">
  <env:Body>
    <n1:login xmlns:n1="urn:partner.soap.sforce.com">
      <n1:username>{username}</n1:username>
      <n1:password>{password}</n1:password>
    </n1:login>
  </env:Body>
</env:Envelope>"""


class SalesforceClient:
    """Client for the Salesforce SOAP login and REST data APIs."""
    
    def __init__(self, username: str, password: str, security_token: str = "",
                 login_url: str = DEFAULT_LOGIN_URL, api_version: str = DEFAULT_API_VERSION,
                 timeout: int = 60):
        """Initialize the Salesforce client.
        
        Args:
            username: Salesforce login email
            password: Salesforce password
            security_token: Security token appended to the password at login
            login_url: Login host (use https://test.salesforce.com for sandboxes)
            api_version: REST/SOAP API version
            timeout: Per-request timeout in seconds
        """
        self.username = username
        self.password = password
        self.security_token = security_token
        self.login_url = login_url.rstrip('/')
        self.api_version = api_version
        self.timeout = timeout
        self.instance_url: Optional[str] = None
        self.session_id: Optional[str] = None
        
        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        
        self.session.headers.update({
            'User-Agent': 'crmsync/1.0.0'
        })
    
    @property
    def is_authenticated(self) -> bool:
        return self.session_id is not None
    
    def login(self) -> Dict[str, Any]:
        """Log in through the SOAP partner API and keep the session for REST calls.
        
        The password sent is the account password followed by the security token.
        
        Returns:
            Basic information about the logged in user
            
        Raises:
            AuthenticationError: If Salesforce rejects the credentials
        """
        url = f"{self.login_url}/services/Soap/u/{self.api_version}"
        body = _LOGIN_ENVELOPE.format(
            username=escape(self.username),
            password=escape(f"{self.password}{self.security_token}")
        )
        headers = {
            'Content-Type': 'text/xml; charset=UTF-8',
            'SOAPAction': 'login',
        }
        
        try:
            logger.debug(f"Logging in to Salesforce at {url} as {self.username}")
            response = self.session.post(url, data=body.encode('utf-8'), headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise AuthenticationError(f"Salesforce login request failed: {e}") from e
        
        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as e:
            raise AuthenticationError(
                f"Unexpected Salesforce login response (HTTP {response.status_code}): {response.text}"
            ) from e
        
        if response.status_code != 200:
            fault = root.findtext('.//faultstring') or response.text
            raise AuthenticationError(f"Salesforce login failed: {fault}")
        
        session_id = root.findtext('.//sf:result/sf:sessionId', namespaces=_SOAP_NS)
        server_url = root.findtext('.//sf:result/sf:serverUrl', namespaces=_SOAP_NS)
        if not session_id or not server_url:
            raise AuthenticationError("Salesforce login response did not include a session")
        
        parsed = urlparse(server_url)
        self.instance_url = f"{parsed.scheme}://{parsed.netloc}"
        self.session_id = session_id
        self.session.headers.update({
            'Authorization': f'Bearer {session_id}',
            'Content-Type': 'application/json',
        })
        
        user_info = {
            "user_id": root.findtext('.//sf:result/sf:userId', namespaces=_SOAP_NS),
            "organization_id": root.findtext('.//sf:userInfo/sf:organizationId', namespaces=_SOAP_NS),
            "user_name": root.findtext('.//sf:userInfo/sf:userName', namespaces=_SOAP_NS),
            "instance_url": self.instance_url,
        }
        logger.info(f"Logged in to Salesforce as {user_info['user_name'] or self.username} ({self.instance_url})")
        return user_info
    
    def _make_request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make a request to the Salesforce REST API.
        
        Args:
            method: HTTP method
            path: Path on the instance, starting with /services
            params: Query parameters
            
        Returns:
            JSON response data
            
        Raises:
            SalesforceAPIError: If the API request fails
        """
        if not self.is_authenticated:
            raise AuthenticationError("Salesforce client is not logged in")
        
        url = f"{self.instance_url}{path}"
        
        try:
            logger.debug(f"Making {method} request to {url} with params: {params}")
            response = self.session.request(method, url, params=params, timeout=self.timeout)
            response.raise_for_status()
            
            return response.json()
            
        except requests.exceptions.RequestException as e:
            logger.error(f"Salesforce API request failed: {e}")
            if getattr(e, 'response', None) is not None:
                if e.response.status_code == 401:
                    raise AuthenticationError(f"Salesforce session rejected: {e.response.text}") from e
                try:
                    error_data = e.response.json()
                except ValueError:
                    raise SalesforceAPIError(f"HTTP {e.response.status_code}: {e.response.text}") from e
                raise SalesforceAPIError(f"API Error: {error_data}") from e
            raise SalesforceAPIError(f"Request failed: {str(e)}") from e
    
    def query(self, soql: str) -> Dict[str, Any]:
        """Run a SOQL query and return the first page of results."""
        logger.debug(f"Executing SOQL: {soql}")
        return self._make_request('GET', f"/services/data/v{self.api_version}/query", params={'q': soql})
    
    def query_more(self, next_records_url: str) -> Dict[str, Any]:
        """Fetch the page referenced by a previous response's ``nextRecordsUrl``."""
        return self._make_request('GET', next_records_url)
    
    def describe(self, object_name: str) -> Dict[str, Any]:
        """Describe a Salesforce object, including its fields."""
        return self._make_request('GET', f"/services/data/v{self.api_version}/sobjects/{object_name}/describe")


def create_client_from_env() -> SalesforceClient:
    """Create a Salesforce client using environment variables.
    
    Returns:
        Configured SalesforceClient instance (not yet logged in)
        
    Raises:
        ConfigurationError: If required environment variables are missing
    """
    return SalesforceClient(**read_env(
        {
            'SALESFORCE_EMAIL': 'username',
            'SALESFORCE_PW': 'password',
            'SALESFORCE_SECURITY_TOKEN': 'security_token',
        },
        {
            'SALESFORCE_LOGIN_URL': ('login_url', DEFAULT_LOGIN_URL),
            'SALESFORCE_API_VERSION': ('api_version', DEFAULT_API_VERSION),
        },
    ))
