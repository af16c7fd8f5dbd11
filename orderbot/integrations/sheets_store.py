"""Google Sheets order store, reached through an Apps Script web app.

Every action goes to the same URL. Mutating and search actions are POSTed
as a JSON body ``{"action": ..., **fields}``; ``getBroadcast`` is a GET with
the action as a query parameter. Responses are handed back untouched.
"""

import logging

import requests

from orderbot import config

logger = logging.getLogger(__name__)

POST_ACTIONS = ("add", "update", "cancel", "search")
GET_ACTIONS = ("getBroadcast",)


class SheetsStore:

    def __init__(self, url=None, timeout=None, session=None):
        self.url = url or config.GOOGLE_SCRIPT_URL
        self.timeout = timeout or config.STORE_TIMEOUT
        self.session = session or requests.Session()

    def call(self, action, payload=None):
        """Send one action to the store. Never raises on I/O failure."""
        if action not in POST_ACTIONS and action not in GET_ACTIONS:
            raise ValueError(f"Unknown store action: {action}")

        try:
            if action in GET_ACTIONS:
                response = self.session.get(
                    self.url, params={"action": action}, timeout=self.timeout
                )
            else:
                body = {"action": action, **(payload or {})}
                logger.debug("Store %s: %s", action, body)
                response = self.session.post(self.url, json=body, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error("Store %s failed: %s", action, e)
            return {"success": False, "message": f"Gagal menghubungi Google Sheets: {e}"}
        except ValueError as e:
            logger.error("Store %s returned non-JSON body: %s", action, e)
            return {"success": False, "message": f"Gagal menghubungi Google Sheets: {e}"}

        if not isinstance(data, dict):
            logger.error("Store %s returned %s instead of an object: %r", action, type(data).__name__, data)
            return {
                "success": False,
                "message": f"Gagal menghubungi Google Sheets: respons tidak valid ({str(data)[:100]})",
            }

        logger.debug("Store %s response: %s", action, data)
        return data

    def add(self, submission):
        return self.call("add", submission)

    def update(self, message_id, update_message, status, notes):
        return self.call("update", {
            "messageId": message_id,
            "updateMessage": update_message,
            "status": status,
            "notes": notes,
        })

    def cancel(self, message_id):
        return self.call("cancel", {"messageId": message_id})

    def search(self, user_id):
        return self.call("search", {"userId": user_id})

    def get_broadcast(self):
        return self.call("getBroadcast")
