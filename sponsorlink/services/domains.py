"""
Domain ownership checks via DNS TXT records.

A user starts a challenge for a domain, publishes `<prefix>=<code>` as a TXT
record, then asks us to check. A match marks the challenge verified and sets
the verified flag on the user's post.
"""
import logging
import re
import secrets
from datetime import datetime, timezone

import dns.exception
import dns.resolver

from sponsorlink.config import DOMAIN_TXT_PREFIX
from sponsorlink.errors import NotFoundError, UpstreamError, ValidationError
from sponsorlink.models.domain_verification import DomainVerification
from sponsorlink.services.circuit_breaker import get_breaker
from sponsorlink.services.stores import PostStore, storage_session

logger = logging.getLogger('services.domains')

DOMAIN_RE = re.compile(r'^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$')


def normalize_domain(domain):
    domain = (domain or '').strip().lower().rstrip('.')
    if domain.startswith('http://') or domain.startswith('https://'):
        domain = domain.split('://', 1)[1].split('/', 1)[0]
    if not domain:
        raise ValidationError('Domain is required')
    if not DOMAIN_RE.match(domain):
        raise ValidationError('Invalid domain')
    return domain


def expected_record(code):
    return f'{DOMAIN_TXT_PREFIX}={code}'


def lookup_txt_records(domain):
    """All TXT strings published at domain. Empty list if none exist."""
    try:
        answers = dns.resolver.resolve(domain, 'TXT', lifetime=5.0)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    records = []
    for rdata in answers:
        records.append(b''.join(rdata.strings).decode('utf-8', errors='replace'))
    return records


def start_verification(identity, domain):
    """Create (or return the existing) challenge for identity + domain."""
    domain = normalize_domain(domain)
    with storage_session('domains.start') as session:
        row = session.query(DomainVerification).filter_by(
            account_email=identity.email, domain=domain,
        ).first()
        if row is None:
            row = DomainVerification(account_email=identity.email, domain=domain, code=secrets.token_hex(16))
            session.add(row)
            session.commit()
        code, verified = row.code, row.verified

    return {
        'success': True,
        'domain': domain,
        'verified': verified,
        'verificationCode': code,
        'instructions': f'Add a TXT record to {domain} with the value "{expected_record(code)}", '
                        'then request a verification check.',
    }


def check_verification(identity, domain, posts=None):
    domain = normalize_domain(domain)
    posts = posts or PostStore()

    with storage_session('domains.load') as session:
        row = session.query(DomainVerification).filter_by(
            account_email=identity.email, domain=domain,
        ).first()
        if row is None:
            raise NotFoundError('No verification started for this domain')
        code, already_verified = row.code, row.verified

    if not already_verified:
        try:
            records = get_breaker('dns').call(lookup_txt_records, domain)
        except dns.exception.DNSException as e:
            raise UpstreamError('dns', str(e)) from e

        if expected_record(code) not in records:
            return {'success': False, 'domain': domain, 'verified': False,
                    'message': 'Verification record not found yet. DNS changes can take a while to propagate.'}

        with storage_session('domains.mark_verified') as session:
            row = session.query(DomainVerification).filter_by(
                account_email=identity.email, domain=domain,
            ).first()
            row.verified = True
            row.verified_at = datetime.now(timezone.utc)
            session.commit()
        logger.info("Domain %s verified for %s", domain, identity.email)

    post = posts.mark_verified(identity.email, True)
    return {'success': True, 'domain': domain, 'verified': True, 'postVerified': post is not None}
