import re
from unidecode import unidecode

# DNS label: 3-63 chars, lowercase alphanumerics and inner hyphens
SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,61}[a-z0-9])$")

RESERVED_SUBDOMAINS = frozenset({"www", "api", "admin", "app", "portal", "mail"})


def normalize_subdomain(text):
    text = unidecode(text or "").strip().lower()
    text = re.sub(r'[^a-z0-9]+', '-', text).strip('-')
    return text


def is_valid_subdomain(subdomain):
    return bool(SUBDOMAIN_PATTERN.match(subdomain)) and subdomain not in RESERVED_SUBDOMAINS


def tenant_host_for(subdomain, platform_domain):
    return f"{subdomain}.{platform_domain}"
