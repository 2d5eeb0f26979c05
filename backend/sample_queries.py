import json
import os
from typing import Optional

import requests

API = os.getenv("PLANMATE_API", "http://127.0.0.1:8000")


def show(data: dict) -> None:
  print(json.dumps(data, indent=2))


def chat(msg: str, sid: Optional[str] = None, mode: Optional[str] = None) -> str:
  body = {"message": msg, "session_id": sid}
  if mode:
    body["mode"] = mode
  r = requests.post(f"{API}/chat", json=body)
  r.raise_for_status()
  data = r.json()
  print(f"> {msg}")
  print(f"[{data['session_state']}] {data['message']}\n")
  return data["session_id"]


def post(path: str) -> requests.Response:
  r = requests.post(f"{API}{path}")
  print(f"POST {path} -> {r.status_code}")
  return r


if __name__ == '__main__':
  sid = chat("I want to plan a date", mode="quick")
  sid = chat("tonight at 7pm", sid)
  sid = chat("somewhere in Riverside", sid)

  # Not confirmed yet: the server refuses to build the plan
  post(f"/sessions/{sid}/generate")

  post(f"/sessions/{sid}/confirm")
  r = post(f"/sessions/{sid}/generate")
  r.raise_for_status()
  show(r.json()["generated_plan"])

  # Smart mode stops early once the essentials are in
  sid = chat("Planning a business trip to Chicago", mode="smart")
  sid = chat("next weekend, flying out at 9am", sid)
  sid = chat("budget is around $1500", sid)
  show(requests.get(f"{API}/sessions/{sid}/preview").json())
