"""End-to-end demo: ask about an order, then escalate the conversation.

Usage (from the project root with the server running):

uvicorn scootcare.server:app --reload
python tools/e2e_chat_demo.py

The script posts two chat messages and one escalation to the running
server using the seeded dev token, and prints the JSON responses.
"""
import os
import sys
import time
import requests

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000").rstrip("/")
TOKEN = os.getenv("SCOOTCARE_TOKEN", "dev-alex")
HEADERS = {"Authorization": f"Bearer {TOKEN}"}

def post(path, payload):
    try:
        r = requests.post(API_BASE + path, json=payload, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        print("Request failed:", e)
        if getattr(e, 'response', None) is not None:
            print('Status:', e.response.status_code)
            print(e.response.text)
        sys.exit(1)

if __name__ == '__main__':
    print(f"Posting to {API_BASE}")

    print("\n==> Step 1: order status (dynamic resolver)")
    resp1 = post("/chat", {"text": "where is my order?"})
    print(resp1["reply"])
    session_id = resp1["session_id"]

    time.sleep(1)

    print("\n==> Step 2: a question the knowledge base cannot answer")
    resp2 = post("/chat", {"text": "purple elephant", "session_id": session_id})
    print(resp2["reply"])

    print("\n==> Step 3: escalate")
    ticket = post(f"/sessions/{session_id}/escalate", {"summary": "Customer needs a human for an unusual question"})
    print(ticket)

    print("\nDemo complete.")
