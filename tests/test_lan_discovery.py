"""
Unit tests for ARP table parsing and device discovery.

Tests cover:
    - parse_arp_output on Linux, macOS and Windows layouts
    - lines that must be skipped
    - discover_devices with a mocked `arp -a`
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from errors import DiscoveryError
from lan_discovery import discover_devices, parse_arp_output
from models import Device


LINUX_ARP = (
    "? (192.168.1.1) at aa:bb:cc:dd:ee:ff [ether] on eth0\n"
    "? (192.168.1.2) at 11:22:33:44:55:66 [ether] on eth0"
)

WINDOWS_ARP = """
Interface: 192.168.1.100 --- 0x6
  Internet Address      Physical Address      Type
  192.168.1.1           00-11-22-33-44-55     dynamic
  192.168.1.255         ff-ff-ff-ff-ff-ff     static
"""


class TestParseArpOutput:
    """Tests for the text-to-record parser."""

    def test_linux_style(self):
        devices = parse_arp_output(LINUX_ARP)
        assert len(devices) == 2
        assert devices[0] == Device(ip="192.168.1.1", mac="aa:bb:cc:dd:ee:ff")
        assert devices[1].mac == "11:22:33:44:55:66"

    def test_macos_style_dash_separator(self):
        sample = "? (192.168.1.3) at 77-88-99-aa-bb-cc on en0 ifscope [ethernet]"
        assert parse_arp_output(sample) == [Device(ip="192.168.1.3", mac="77:88:99:aa:bb:cc")]

    def test_windows_table(self):
        devices = parse_arp_output(WINDOWS_ARP)
        assert devices == [
            Device(ip="192.168.1.1", mac="00:11:22:33:44:55"),
            Device(ip="192.168.1.255", mac="ff:ff:ff:ff:ff:ff"),
        ]

    def test_skips_headers_blanks_and_incomplete(self):
        sample = (
            "Address HWtype HWaddress Flags Mask Iface\n"
            "\n"
            "? (192.168.1.9) at <incomplete> on eth0\n"
            "? (192.168.1.4) at de:ad:be:ef:00:01 [ether] on eth0\n"
        )
        assert parse_arp_output(sample) == [Device(ip="192.168.1.4", mac="de:ad:be:ef:00:01")]

    def test_mixed_separators_are_not_a_mac(self):
        assert parse_arp_output("? (10.0.0.1) at aa:bb-cc:dd:ee:ff on eth0") == []

    def test_mac_before_ip_is_skipped(self):
        assert parse_arp_output("aa:bb:cc:dd:ee:ff 10.0.0.1") == []

    def test_case_preserved_separator_normalized(self):
        devices = parse_arp_output("10.0.0.7  AA-BB-CC-0D-EE-FF  dynamic")
        assert devices == [Device(ip="10.0.0.7", mac="AA:BB:CC:0D:EE:FF")]

    def test_first_pair_per_line_only(self):
        line = "10.0.0.1 aa:bb:cc:dd:ee:01 10.0.0.2 aa:bb:cc:dd:ee:02"
        assert parse_arp_output(line) == [Device(ip="10.0.0.1", mac="aa:bb:cc:dd:ee:01")]

    def test_duplicates_kept_in_line_order(self):
        sample = (
            "? (192.168.1.5) at 00:00:00:00:00:02 on eth0\n"
            "? (192.168.1.5) at 00:00:00:00:00:01 on eth1\n"
        )
        devices = parse_arp_output(sample)
        assert [d.mac for d in devices] == ["00:00:00:00:00:02", "00:00:00:00:00:01"]

    def test_ip_copied_verbatim(self):
        devices = parse_arp_output("? (999.1.1.1) at aa:bb:cc:dd:ee:ff")
        assert devices[0].ip == "999.1.1.1"

    def test_empty_input(self):
        assert parse_arp_output("") == []

    def test_device_is_immutable(self):
        dev = Device(ip="10.0.0.1", mac="aa:bb:cc:dd:ee:ff")
        with pytest.raises(Exception):
            dev.ip = "10.0.0.2"


class TestDiscoverDevices:
    """Tests for discover_devices with subprocess mocked out."""

    @patch("lan_discovery.subprocess.run")
    def test_runs_arp_and_parses(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout=LINUX_ARP.encode("utf-8"))
        devices = discover_devices()
        assert len(devices) == 2
        assert mock_run.call_args[0][0] == ["arp", "-a"]

    @patch("lan_discovery.subprocess.run")
    def test_nonzero_exit_still_parsed(self, mock_run):
        mock_run.return_value = Mock(returncode=1, stdout=LINUX_ARP.encode("utf-8"))
        assert len(discover_devices()) == 2

    @patch("lan_discovery.subprocess.run", side_effect=FileNotFoundError("arp"))
    def test_missing_command(self, mock_run):
        with pytest.raises(DiscoveryError, match="Command execution failed"):
            discover_devices()

    @patch("lan_discovery.subprocess.run", side_effect=subprocess.TimeoutExpired(["arp", "-a"], 6.0))
    def test_timeout(self, mock_run):
        with pytest.raises(DiscoveryError):
            discover_devices()

    @patch("lan_discovery.subprocess.run")
    def test_invalid_utf8(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout=b"\xff\xfe\xfd")
        with pytest.raises(DiscoveryError, match="not valid UTF-8"):
            discover_devices()
