"""Tests for the domain-name helpers."""

import pytest

from gleaner.common.naming import (
    domain_to_identifier,
    get_domain,
    identifier_to_domain,
)
from gleaner.fields_parser import FieldsParser


class TestGetDomain:
    """Tests for get_domain()."""

    def test_strips_www(self):
        """get_domain() shall drop a leading www."""
        assert get_domain("https://www.example.com/page?x=1") == "example.com"

    def test_keeps_other_subdomains(self):
        """get_domain() shall keep subdomains other than www."""
        assert get_domain("http://shop.example.com") == "shop.example.com"

    def test_no_host(self):
        """get_domain() shall return an empty string for relative URLs."""
        assert get_domain("/relative/path") == ""


class TestDomainIdentifiers:
    """Tests for domain_to_identifier() and identifier_to_domain()."""

    def test_domain_to_identifier(self):
        """Segments after the first shall be capitalized and joined."""
        assert domain_to_identifier("example.com") == "exampleCom"
        assert domain_to_identifier("shop.example.co.uk") == "shopExampleCoUk"

    def test_alias_wins(self):
        """An alias table entry shall take precedence."""
        aliases = {"example.com": "ExampleShop"}

        assert domain_to_identifier("example.com", aliases) == "ExampleShop"
        assert domain_to_identifier("other.org", aliases) == "otherOrg"

    def test_identifier_to_domain(self):
        """Internal capitals shall become dot-separated lowercase segments."""
        assert identifier_to_domain("exampleCom") == "example.com"
        assert identifier_to_domain("ExampleCom") == "example.com"

    @pytest.mark.parametrize(
        "domain", ["example.com", "shop.example.org", "a.b.c"]
    )
    def test_round_trip(self, domain):
        """Plain lowercase domains shall survive a round trip."""
        assert identifier_to_domain(domain_to_identifier(domain)) == domain

    def test_acronyms_do_not_round_trip(self):
        """Consecutive capitals are split letter by letter (known limitation)."""
        assert identifier_to_domain("exampleCOM") == "example.c.o.m"

    def test_parser_uses_alias_domains(self):
        """FieldsParser.domain_to_identifier shall honor alias_domains."""

        class AliasedParser(FieldsParser):
            alias_domains = {"www-shop.example.com": "ExampleShop"}

        assert (
            AliasedParser.domain_to_identifier("www-shop.example.com")
            == "ExampleShop"
        )
        assert AliasedParser.domain_to_identifier("example.com") == "exampleCom"
