import unittest
from datetime import datetime, timedelta, timezone

from coursebook.firestore_codec import (
    decode_fields,
    decode_value,
    encode_fields,
    encode_value,
    parse_timestamp,
)


class TestEncode(unittest.TestCase):
    def test_scalars(self) -> None:
        self.assertEqual(encode_value("abc"), {"stringValue": "abc"})
        self.assertEqual(encode_value(-1), {"integerValue": "-1"})
        self.assertEqual(encode_value(True), {"booleanValue": True})
        self.assertEqual(encode_value(None), {"nullValue": None})
        self.assertEqual(encode_value(1.5), {"doubleValue": 1.5})

    def test_timestamp_is_utc(self) -> None:
        jst = timezone(timedelta(hours=9))
        self.assertEqual(
            encode_value(datetime(2025, 4, 1, 10, 0, tzinfo=jst)),
            {"timestampValue": "2025-04-01T01:00:00.000000Z"},
        )

    def test_project_fields(self) -> None:
        fields = encode_fields(
            {"managedResources": [{"id": "primary", "isPrimary": True}], "capacities": {"primary": 20}}
        )
        self.assertEqual(
            fields["managedResources"],
            {
                "arrayValue": {
                    "values": [
                        {
                            "mapValue": {
                                "fields": {"id": {"stringValue": "primary"}, "isPrimary": {"booleanValue": True}}
                            }
                        }
                    ]
                }
            },
        )
        self.assertEqual(fields["capacities"], {"mapValue": {"fields": {"primary": {"integerValue": "20"}}}})

    def test_unsupported(self) -> None:
        with self.assertRaises(TypeError):
            encode_value(object())


class TestDecode(unittest.TestCase):
    def test_schedule_document(self) -> None:
        raw = {
            "dateTime": {"timestampValue": "2025-04-01T01:00:00.123456789Z"},
            "capacities": {"mapValue": {"fields": {"primary": {"integerValue": "-1"}}}},
        }
        data = decode_fields(raw)
        self.assertEqual(data["dateTime"], datetime(2025, 4, 1, 1, 0, 0, 123456, tzinfo=timezone.utc))
        self.assertEqual(data["capacities"], {"primary": -1})

    def test_empty_containers(self) -> None:
        self.assertEqual(decode_value({"arrayValue": {}}), [])
        self.assertEqual(decode_value({"mapValue": {}}), {})

    def test_timestamp_without_fraction(self) -> None:
        self.assertEqual(parse_timestamp("2025-04-01T01:00:00Z"), datetime(2025, 4, 1, 1, 0, tzinfo=timezone.utc))

    def test_unknown_value(self) -> None:
        with self.assertRaises(ValueError):
            decode_value({"weirdValue": 1})


if __name__ == "__main__":
    unittest.main()
