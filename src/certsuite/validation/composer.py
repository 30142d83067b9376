"""Compose the validator list applicable to a backend.

`validators_for` maps the capabilities a backend declared unsupported to the
assertions worth running against it. Baseline validators always apply; a
capability-gated validator is dropped exactly when its capability is declared
unsupported, since asserting it would be a guaranteed, uninformative failure.
"""

from __future__ import annotations

from collections.abc import Iterable

from certsuite.domain.capabilities import Capability, CapabilitySet

from . import certificates as v
from .certificates import ValidationFunc

BASELINE: tuple[ValidationFunc, ...] = (
    v.expect_dns_names_to_match,
    v.expect_organization_to_match,
    v.expect_valid_certificate,
    v.expect_valid_private_key_data,
    v.expect_valid_common_name,
    v.expect_valid_basic_constraints,
    v.expect_valid_not_after_date,
    v.expect_valid_keys_in_secret,
    v.expect_valid_annotations,
    v.expect_condition_ready_observed_generation,
)


def validators_for(
    unsupported: CapabilitySet | Iterable[Capability] = (),
) -> list[ValidationFunc]:
    """Return the validators to run given the unsupported capabilities.

    The result is the baseline followed by the gated validators in a fixed
    order. The root-CA check is nested under the trust-chain check: it is
    only included when the chain check is.

    The function is pure and monotonic: declaring more capabilities
    unsupported never adds a validator.
    """
    if not isinstance(unsupported, CapabilitySet):
        unsupported = CapabilitySet(unsupported)

    out = list(BASELINE)
    if Capability.URI_SANS not in unsupported:
        out.append(v.expect_uris_to_match)
    if Capability.EMAIL_SANS not in unsupported:
        out.append(v.expect_emails_to_match)
    if Capability.IP_ADDRESSES not in unsupported:
        out.append(v.expect_ip_addresses_to_match)
    if Capability.SAVE_CA_TO_SECRET not in unsupported:
        out.append(v.expect_correct_trust_chain)
        if Capability.SAVE_ROOT_CA_TO_SECRET not in unsupported:
            out.append(v.expect_ca_root_certificate)
    if Capability.DURATION not in unsupported:
        out.append(v.expect_duration_to_match)
    return out
