"""
Naming utilities for AWS resources of the Spicedlings Final Projects.

Every stack, resource name and tag is derived from a SpicedlingIdentity by
concatenating the fixed prefix with cohort, first name and last name (and a
resource name when given) and re-casing the result.

The composition order prefix -> cohort -> first name -> last name -> resource
is load bearing: changing it renames, and thus recreates, every downstream
resource of an already deployed project.

Word splitting mirrors the lodash helpers the existing deployments were named
with, so that names stay stable:
- accents are stripped ("Gonçalves" -> "Goncalves")
- apostrophes are dropped before splitting ("D'angelo" -> "Dangelo")
- words break on non-alphanumerics, lower/upper transitions, acronym
  boundaries ("HTTPServer" -> "HTTP", "Server") and letter/digit boundaries

Usage Example:
    identity = SpicedlingIdentity(cohort='Jasmine', first_name='Daniel', last_name='Streif')

    services_stack_name(identity)
    # 'SpicedlingFinalProjectServicesJasmineDanielStreif'

    resource_kebab_case_name('Node Server', identity)
    # 'spicedling-final-project-jasmine-daniel-streif/node-server'
"""

import re
import unicodedata
from typing import Dict, List

from spicedlings_shared.settings import (
    APPLICATION_GROUP_TAG,
    APPLICATION_TAG_PREFIX,
    SPICEDLING_STACKS_NAME_PREFIX,
)
from spicedlings_shared.types import SpicedlingIdentity

# Acronyms, capitalized words, lower case words, leftover capitals, digit runs
_WORD_PATTERN = re.compile(
    r'[A-Z]+(?=[A-Z][a-z])'
    r'|[A-Z]?[a-z]+'
    r'|[A-Z]+'
    r'|[0-9]+'
)

_APOSTROPHES = re.compile("['\u2019]")

# Latin letters that do not decompose under NFKD
_LIGATURES = {
    'ß': 'ss', 'æ': 'ae', 'Æ': 'Ae', 'œ': 'oe', 'Œ': 'Oe',
    'ø': 'o', 'Ø': 'O', 'đ': 'd', 'Đ': 'D', 'ł': 'l', 'Ł': 'L',
    'þ': 'th', 'Þ': 'Th', 'ð': 'd', 'Ð': 'D',
}


# Casing --------------------------------------------------------------------------

def deburr(text: str) -> str:
    """Strip diacritics and expand common Latin ligatures."""
    decomposed = unicodedata.normalize('NFKD', text)
    stripped = ''.join(char for char in decomposed if not unicodedata.combining(char))
    return ''.join(_LIGATURES.get(char, char) for char in stripped)


def words(text: str) -> List[str]:
    """Split text into the words the casing helpers join."""
    return _WORD_PATTERN.findall(_APOSTROPHES.sub('', deburr(text)))


def camel_case(text: str) -> str:
    parts = [word.lower() for word in words(text)]
    return ''.join(parts[:1] + [part.capitalize() for part in parts[1:]])


def upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def pascal_case(text: str) -> str:
    return upper_first(camel_case(text))


def kebab_case(text: str) -> str:
    return '-'.join(word.lower() for word in words(text))


def snake_case(text: str) -> str:
    return '_'.join(word.lower() for word in words(text))


def upper_snake_case(text: str) -> str:
    return snake_case(text).upper()


def _identity_base(identity: SpicedlingIdentity) -> str:
    return f"{SPICEDLING_STACKS_NAME_PREFIX}{identity.cohort}{identity.first_name}{identity.last_name}"


# Main Resources ------------------------------------------------------------------

def main_resource_camel_case_name(identity: SpicedlingIdentity) -> str:
    return camel_case(_identity_base(identity))


def main_resource_pascal_case_name(identity: SpicedlingIdentity) -> str:
    """Name shared by the pipeline, cluster and Fargate service of a project."""
    return upper_first(main_resource_camel_case_name(identity))


# Stack Names ---------------------------------------------------------------------

def stack_name(kind: str, identity: SpicedlingIdentity) -> str:
    """
    Build a per-student stack name.

    The stack kind goes directly after the prefix, e.g.
    SpicedlingFinalProject + Services + Jasmine + Daniel + Streif.
    """
    return upper_first(camel_case(
        f"{SPICEDLING_STACKS_NAME_PREFIX}{kind}{identity.cohort}{identity.first_name}{identity.last_name}"
    ))


def services_stack_name(identity: SpicedlingIdentity) -> str:
    return stack_name('Services', identity)


def pipeline_stack_name(identity: SpicedlingIdentity) -> str:
    return stack_name('Pipeline', identity)


def fargate_service_stack_name(identity: SpicedlingIdentity) -> str:
    return stack_name('FargateService', identity)


# Tags ----------------------------------------------------------------------------

def stack_tags(application_role: str, identity: SpicedlingIdentity) -> Dict[str, str]:
    return {
        'ApplicationGroup': APPLICATION_GROUP_TAG,
        'Application': f"{APPLICATION_TAG_PREFIX} {identity.cohort} {identity.first_name} {identity.last_name}",
        'ApplicationRole': application_role,
        'SpicedlingName': f"{identity.first_name} {identity.last_name}",
        'SpicedlingCohort': identity.cohort,
    }


# Resources -----------------------------------------------------------------------

def resource_kebab_case_name(resource_name: str, identity: SpicedlingIdentity) -> str:
    return f"{kebab_case(_identity_base(identity))}/{kebab_case(resource_name)}"


def resource_camel_case_name(resource_name: str, identity: SpicedlingIdentity) -> str:
    return f"{camel_case(_identity_base(identity))}/{camel_case(resource_name)}"


def resource_camel_case_name_without_separator(resource_name: str, identity: SpicedlingIdentity) -> str:
    return camel_case(f"{_identity_base(identity)}{resource_name}")


def resource_pascal_case_name_without_separator(resource_name: str, identity: SpicedlingIdentity) -> str:
    return upper_first(resource_camel_case_name_without_separator(resource_name, identity))


def resource_pascal_case_name(resource_name: str, identity: SpicedlingIdentity) -> str:
    return upper_first(resource_camel_case_name(resource_name, identity))


def secret_name(owner_stack_name: str, key: str) -> str:
    """Secrets Manager name of a service secret, e.g. SPICEDLING_..._SESSION_SECRET."""
    return upper_snake_case(f"{owner_stack_name}_{key}")


# Other ---------------------------------------------------------------------------

def ascii_only(text: str) -> str:
    """Drop non-ASCII characters, e.g. for security group descriptions."""
    return ''.join(char for char in text if ord(char) < 127)
