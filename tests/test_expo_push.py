import json
import unittest

import httpx

from teamsum.pipeline.constants import PUSH_CHANNEL_ID
from teamsum.services.expo_push import ExpoPushClient


def _client(status=200, seen=None, token=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json={"data": []})

    return ExpoPushClient(access_token=token, transport=httpx.MockTransport(handler))


class ExpoPushClientTests(unittest.TestCase):
    def test_posts_one_message_per_token(self):
        seen = []
        ok = _client(seen=seen, token="secret").send_sync(
            ["ExponentPushToken[a]", "", "ExponentPushToken[b]"],
            "Week in Review",
            "Your weekly summary is ready!",
            {"type": "combined_weekly_summary"},
        )
        self.assertTrue(ok)
        self.assertEqual(len(seen), 1)
        request = seen[0]
        self.assertEqual(request.headers["Authorization"], "Bearer secret")
        payload = json.loads(request.content)
        self.assertEqual([m["to"] for m in payload], ["ExponentPushToken[a]", "ExponentPushToken[b]"])
        self.assertEqual(payload[0]["title"], "Week in Review")
        self.assertEqual(payload[0]["body"], "Your weekly summary is ready!")
        self.assertEqual(payload[0]["channelId"], PUSH_CHANNEL_ID)
        self.assertEqual(payload[0]["data"], {"type": "combined_weekly_summary"})

    def test_non_200_is_reported_as_failure(self):
        self.assertFalse(_client(status=500).send_sync(["ExponentPushToken[a]"], "t", "b"))

    def test_no_tokens_sends_nothing(self):
        seen = []
        self.assertFalse(_client(seen=seen).send_sync([], "t", "b"))
        self.assertEqual(seen, [])


if __name__ == "__main__":
    unittest.main()
