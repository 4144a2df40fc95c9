"""
Intelligence provider clients.

One module per external source. Each client normalizes its native response
into a flat payload and talks to the network only through a ``Transport``.
"""

from .base import ProviderClient, ProviderResponse, as_bool, as_int, require_mapping
from .abuseipdb import AbuseIPDBClient
from .breachdirectory import BreachDirectoryClient
from .dns import DnsClient
from .email_auth import EmailAuthClient
from .emailrep import EmailRepClient
from .hunter import HunterClient
from .ip_api import IpApiClient
from .ipqs import IPQSEmailClient, IPQualityScoreClient
from .osv import OsvClient
from .rdap import RdapClient

__all__ = [
    # Base classes and helpers
    'ProviderClient',
    'ProviderResponse',
    'as_bool',
    'as_int',
    'require_mapping',

    # Client implementations
    'AbuseIPDBClient',
    'BreachDirectoryClient',
    'DnsClient',
    'EmailAuthClient',
    'EmailRepClient',
    'HunterClient',
    'IpApiClient',
    'IPQSEmailClient',
    'IPQualityScoreClient',
    'OsvClient',
    'RdapClient',
]
