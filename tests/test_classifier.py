"""
Tests for indicator classification and token normalization
"""

import pytest

from edlhub.errors import ValidationError
from edlhub.services.classifier import KIND_FQDN, KIND_HOSTNAME, KIND_IP, classify, normalize_token


class TestClassify:
    """Test classify()"""

    @pytest.mark.parametrize("token", [
        "1.2.3.4",
        "255.255.255.255",
        "10.0.0.0/8",
        "192.168.1.0/24",
        "0.0.0.0/0",
        "2001:0db8:85a3:0000:0000:8a2e:0370:7334",
        "2001:db8:0:0:0:0:0:1/64",
    ])
    def test_ip(self, token):
        assert classify(token) == KIND_IP

    @pytest.mark.parametrize("token", ["evil.example.com", "example.com", "256.1.1.1", "1.2.3.4/33"])
    def test_fqdn(self, token):
        assert classify(token) == KIND_FQDN

    @pytest.mark.parametrize("token", ["localhost", "fileserver01"])
    def test_hostname(self, token):
        assert classify(token) == KIND_HOSTNAME

    def test_compressed_ipv6_is_not_an_ip(self):
        """Only the full 8-group form is recognised"""
        assert classify("2001:db8::1") == KIND_HOSTNAME
        assert classify("::1") == KIND_HOSTNAME

    def test_deterministic(self):
        assert classify("evil.example.com") == classify("evil.example.com")


class TestNormalizeToken:
    """Test normalize_token()"""

    def test_trims_and_lowercases(self):
        assert normalize_token("  Evil.Example.COM \n") == "evil.example.com"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_rejected(self, raw):
        with pytest.raises(ValidationError):
            normalize_token(raw)

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            normalize_token("a" * 254)

    @pytest.mark.parametrize("raw", ["evil example.com", "http://evil.com?x=1", "bad;token", "<script>"])
    def test_invalid_characters_rejected(self, raw):
        with pytest.raises(ValidationError):
            normalize_token(raw)
