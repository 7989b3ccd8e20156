"""
Client Python minimal : classement d'une classe et édition d'un bulletin via l'API.
Prérequis : pip install requests
Usage :
  python client_example.py --host http://127.0.0.1:8000 --user admin --password secret --class-id 1 --term-id 1
  python client_example.py ... --student 3   # édite aussi le bulletin de l'élève 3
"""

import argparse
import json
import time

import requests


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="http://127.0.0.1:8000")
    parser.add_argument("--user", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--class-id", type=int, required=True)
    parser.add_argument("--term-id", type=int, required=True)
    parser.add_argument("--student", type=int, help="Élève dont le bulletin est à éditer")
    args = parser.parse_args()

    session = requests.Session()
    # Auth basique pour l'exemple (pour la prod, préférer token/JWT)
    session.auth = (args.user, args.password)

    resp = session.get(f"{args.host}/api/rankings/", params={"class_id": args.class_id, "term_id": args.term_id})
    resp.raise_for_status()
    payload = resp.json()
    print(f"Classement - {payload['term']}")
    for row in payload["rankings"]:
        print(f"{row['rank']:>6}  {row['name']:<30} {row['average']:6.2f}")

    if not args.student:
        return

    resp = session.post(f"{args.host}/api/bulletins/", json={"student_id": args.student, "term_id": args.term_id})
    resp.raise_for_status()
    bulletin_id = resp.json()["id"]
    print(f"Bulletin demandé, id={bulletin_id}, status={resp.json()['status']}")

    # Polling simple jusqu'à READY
    for _ in range(30):
        r = session.get(f"{args.host}/api/bulletins/{bulletin_id}/")
        r.raise_for_status()
        data = r.json()
        if data["status"] == "READY":
            print(json.dumps(data["payload"], ensure_ascii=False, indent=2))
            return
        if data["status"] == "FAILED":
            print("Édition du bulletin en échec.")
            return
        time.sleep(2)
    print("Timeout avant que le bulletin soit prêt.")


if __name__ == "__main__":
    main()
