import os, sys, requests
from dotenv import load_dotenv

load_dotenv()
API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")
TOKEN = os.getenv("SCOOTCARE_TOKEN", "dev-alex")
HEADERS = {"Authorization": f"Bearer {TOKEN}"}

def call(method, path, payload=None):
    r = requests.request(method, f"{API_BASE}{path}", json=payload, headers=HEADERS, timeout=30)
    r.raise_for_status()
    return r.json()

def main():
    print("Hi, welcome to ScootCare support. How can we help with your scooter today?")
    quick = call("GET", "/knowledge/quick")
    for i, q in enumerate(quick, 1):
        print(f"[{i}] {q['question_pattern']}")
    print("Type a number or just start chatting. /escalate <summary>, /new, /orders. Ctrl+C to exit.")
    session_id = call("GET", "/sessions/latest")["id"]
    while True:
        try:
            user = input("> ").strip()
            if not user:
                continue
            if user.isdigit() and 1 <= int(user) <= len(quick):
                user = quick[int(user) - 1]["question_pattern"]
            if user == "/new":
                session_id = call("POST", "/sessions")["id"]
                print("(Started a new conversation)")
                continue
            if user == "/orders":
                for o in call("GET", "/orders"):
                    print(f"  {o['id']}: {o['model_name']} - {o['status']} (delivery {o['expected_delivery_date'] or 'tbd'})")
                continue
            if user.startswith("/escalate"):
                summary = user[len("/escalate"):].strip() or "Customer asked for a human agent"
                t = call("POST", f"/sessions/{session_id}/escalate", {"summary": summary})
                print(f"ScootCare: Escalated to support. Ticket {t['id']} is {t['status']}.")
                continue
            data = call("POST", "/chat", {"text": user, "session_id": session_id})
            session_id = data["session_id"]
            if data.get("reply"):
                print(f"ScootCare: {data['reply']}")
            else:
                print("(Sent to your support agent)")
            if data.get("offer_escalation"):
                print("  (type /escalate <summary> to reach a human)")
        except KeyboardInterrupt:
            print("\nGoodbye!"); break
        except Exception as e:
            print(f"(error) {e}", file=sys.stderr)

if __name__ == "__main__":
    main()
