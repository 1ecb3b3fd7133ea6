"""Tests for catalog identification."""

import hashlib
from dataclasses import replace

from rtd266x_logo_flasher.fingerprint import RegionFingerprint, SkipRange
from rtd266x_logo_flasher.identify import descriptor_matches, identify_firmware
from rtd266x_logo_flasher.models import (
    CATALOG,
    FirmwareDescriptor,
    get_firmware,
    list_firmwares,
    read_variant_string,
)


def _zero_descriptor(name="Zero build") -> FirmwareDescriptor:
    return FirmwareDescriptor(
        name=name,
        logo_offset=0x100,
        variant_string_offset=0x40,
        max_patch_length=64,
        fingerprints=(
            RegionFingerprint(
                start=0,
                end=64,
                expected_digest=hashlib.sha256(b"\x00" * 60).hexdigest(),
                skips=(SkipRange(10, 4),),
            ),
        ),
    )


class TestIdentifyFirmware:
    """First-match identification over an ordered catalog."""

    def test_match_despite_changes_in_skip_range(self):
        image = bytearray(512 * 1024)
        image[10:14] = b"\x01\x02\x03\x04"
        descriptor = _zero_descriptor()
        assert identify_firmware(image, [descriptor]) is descriptor

    def test_realistic_image_identified(self, firmware_image, make_descriptor):
        descriptor = make_descriptor(firmware_image)
        assert identify_firmware(firmware_image, [descriptor]) is descriptor

    def test_logo_change_keeps_identification(self, firmware_image, make_descriptor):
        descriptor = make_descriptor(firmware_image)
        patched = bytearray(firmware_image)
        patched[0x260D8:0x260D8 + 903] = b"\x00" * 903
        assert identify_firmware(patched, [descriptor]) is descriptor

    def test_code_change_breaks_identification(self, firmware_image, make_descriptor):
        descriptor = make_descriptor(firmware_image)
        patched = bytearray(firmware_image)
        patched[0x1000] ^= 0xFF
        assert identify_firmware(patched, [descriptor]) is None

    def test_first_match_wins(self):
        # Two entries that both match the same image: catalog order decides
        first = _zero_descriptor("First")
        second = _zero_descriptor("Second")
        image = bytes(64)

        assert identify_firmware(image, [first, second]) is first
        assert identify_firmware(image, [second, first]) is second

    def test_deterministic(self, firmware_image, make_descriptor):
        catalog = [_zero_descriptor(), make_descriptor(firmware_image)]
        assert identify_firmware(firmware_image, catalog) is identify_firmware(firmware_image, catalog)

    def test_short_image_is_non_match_not_error(self, make_descriptor):
        small = bytes(64)
        big = make_descriptor(bytes(0x80000), name="Big")
        assert identify_firmware(small, [big]) is None
        assert identify_firmware(small, [big, _zero_descriptor()]).name == "Zero build"

    def test_every_fingerprint_must_match(self):
        good = _zero_descriptor().fingerprints[0]
        bad = replace(good, expected_digest="00" * 32)
        descriptor = replace(_zero_descriptor(), fingerprints=(good, bad))
        assert not descriptor_matches(bytes(64), descriptor)

    def test_uppercase_expected_digest(self):
        descriptor = _zero_descriptor()
        region = descriptor.fingerprints[0]
        upper = replace(descriptor, fingerprints=(replace(region, expected_digest=region.expected_digest.upper()),))
        assert identify_firmware(bytes(64), [upper]) is upper

    def test_empty_catalog(self):
        assert identify_firmware(bytes(64), []) is None

    def test_builtin_catalog_rejects_blank_flash(self):
        assert identify_firmware(b"\xFF" * 0x80000) is None


class TestCatalog:
    """Integrity of the built-in catalog."""

    def test_catalog_order_and_names(self):
        assert list_firmwares() == [
            "KeDei v1.0",
            "KeDei v1.1, panel type 1 (SKY035S13B00-14439)",
            "KeDei v1.1, panel type 2 (SKY035S13D-199)",
        ]

    def test_get_firmware(self):
        descriptor = get_firmware("KeDei v1.0")
        assert descriptor.logo_offset == 0x260D8
        assert descriptor.variant_string_offset == 0x12346
        assert descriptor.max_patch_length == 1507
        assert get_firmware("kedei v1.0") is None

    def test_every_entry_skips_logo_and_hdmi_string(self):
        for descriptor in CATALOG:
            for region in descriptor.fingerprints:
                skips = {(s.offset, s.length) for s in region.skips}
                assert (descriptor.logo_offset, 903) in skips
                assert (descriptor.variant_string_offset, 16) in skips
                assert region.end == 0x80000
                assert len(region.expected_digest) == 64

    def test_digests_are_distinct(self):
        digests = [r.expected_digest for d in CATALOG for r in d.fingerprints]
        assert len(set(digests)) == len(digests)

    def test_read_variant_string(self, firmware_image):
        assert read_variant_string(firmware_image, CATALOG[0]) == "HDMI"
