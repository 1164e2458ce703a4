"""
Test API

REST routes and the /ws command bus through FastAPI's TestClient, with an
in-memory store injected in place of the startup wiring.
"""

import pytest
from fastapi.testclient import TestClient

from api import dependencies
from api.main import app
from core.services import PresentationService
from modules.intent.pattern import PatternIntent
from modules.storage.sql_store import SQLStore

CONTENT = "Neural networks learn representations from training data"


@pytest.fixture
def client():
    store = SQLStore(":memory:")
    store.initialize()
    dependencies.presentation_service = PresentationService(
        classifier=PatternIntent(),
        store=store,
        settings={'content': {'generate_on_end': []}}
    )

    with TestClient(app) as client:
        yield client

    dependencies.presentation_service = None


def start(client, presentation_id="deck", total_slides=5) -> dict:
    response = client.post("/api/sessions", json={
        'presentation_id': presentation_id,
        'total_slides': total_slides
    })
    assert response.status_code == 200
    return response.json()


def say(client, text, presentation_id="deck", confidence=0.9) -> dict:
    response = client.post(f"/api/sessions/{presentation_id}/utterance", json={
        'text': text,
        'confidence': confidence
    })
    assert response.status_code == 200
    return response.json()


class TestSystem:

    def test_root(self, client):
        data = client.get("/").json()
        assert data['status'] == "ready"
        assert data['endpoints']['websocket'].startswith("/ws")

    def test_health(self, client):
        data = client.get("/health").json()
        assert data['status'] == "healthy"
        assert data['service_ready'] is True
        assert data['open_sessions'] == 0


class TestSessionRoutes:

    def test_lifecycle(self, client):
        session = start(client)
        assert session['state'] == "active"
        assert session['current_slide'] == 1

        assert client.get("/api/sessions").json()['total'] == 1
        assert client.post("/api/sessions/deck/pause").json()['state'] == "paused"
        assert client.post("/api/sessions/deck/resume").json()['state'] == "active"

        ended = client.post("/api/sessions/deck/end").json()
        assert ended['state'] == "ended"
        assert ended['end_time'] is not None
        assert client.get("/api/sessions").json()['total'] == 0

    def test_start_twice_returns_same_session(self, client):
        first = start(client)
        second = start(client)
        assert first['id'] == second['id']

    def test_utterances(self, client):
        session = start(client)

        content = say(client, CONTENT)
        assert content['handled'] is True
        assert content['is_command'] is False
        assert content['keywords'][0] == "neural"
        assert content['session_id'] == session['id']

        command = say(client, "next slide")
        assert command['is_command'] is True
        assert command['executed'] is True
        assert command['intent'] == "navigate_next"
        assert command['slide'] == 2

        low = say(client, "next slide", confidence=0.4)
        assert low['executed'] is False
        assert low['slide'] == 2

    def test_interim_not_handled(self, client):
        start(client)
        response = client.post("/api/sessions/deck/utterance", json={'text': 'neural', 'is_final': False})
        assert response.json()['handled'] is False

    def test_metrics_and_transcript(self, client):
        session = start(client)
        say(client, CONTENT)

        metrics = client.get(f"/api/sessions/{session['id']}/metrics").json()
        assert metrics['segment_count'] == 1
        assert metrics['word_count'] == 7

        transcript = client.get(f"/api/sessions/{session['id']}/transcript").json()
        assert transcript['total'] == 1
        assert transcript['segments'][0]['text'] == CONTENT

    def test_slide_sync_and_total(self, client):
        start(client)

        assert client.post("/api/sessions/deck/slides", json={'total_slides': 8}).json()['total_slides'] == 8
        assert client.post("/api/sessions/deck/slide", json={'slide': 7}).json()['changed'] is True
        assert client.post("/api/sessions/deck/slide", json={'slide': 7}).json()['changed'] is False

    def test_errors(self, client):
        assert client.post("/api/sessions/nope/pause").status_code == 404
        assert client.get("/api/sessions/missing/metrics").status_code == 404
        assert client.post("/api/sessions", json={'presentation_id': 'deck', 'total_slides': 0}).status_code == 422
        assert client.post("/api/sessions/deck/utterance", json={'text': 'x', 'confidence': 2}).status_code == 422


class TestContentRoutes:

    def test_quiz_and_grading(self, client):
        session = start(client)
        say(client, CONTENT)

        quiz = client.post(f"/api/content/{session['id']}/quiz", json={'quiz_type': 'mcq'}).json()
        assert quiz['total_questions'] == 5
        assert all(len(q['options']) == 4 for q in quiz['questions'])

        listed = client.get(f"/api/content/{session['id']}/quizzes").json()
        assert listed['total'] == 1

        first = quiz['questions'][0]
        result = client.post(
            f"/api/content/quizzes/{quiz['id']}/grade",
            json={'answers': {str(first['number']): first['correct_answer']}}
        ).json()
        assert result['score'] == 20
        assert result['correct_answers'] == 1

    def test_summary(self, client):
        session = start(client)
        say(client, CONTENT)
        client.post("/api/sessions/deck/end")

        summary = client.post(f"/api/content/{session['id']}/summary").json()
        assert summary['ranked_keywords'][0] == "neural"
        assert summary['markdown'].startswith("# Presentation Summary")

        assert client.get(f"/api/content/{session['id']}/summaries").json()['total'] == 1

        download = client.get(f"/api/content/{session['id']}/summary.md")
        assert download.status_code == 200
        assert download.headers['content-type'].startswith("text/markdown")
        assert "## Recommendations" in download.text

    def test_insufficient_content(self, client):
        session = start(client)

        response = client.post(f"/api/content/{session['id']}/quiz", json={'quiz_type': 'theory'})

        assert response.status_code == 422
        assert "no transcript segments" in response.json()['detail']

    def test_content_errors(self, client):
        session = start(client)

        assert client.post("/api/content/missing/summary").status_code == 404
        assert client.get(f"/api/content/{session['id']}/summary.md").status_code == 404
        assert client.post("/api/content/quizzes/nope/grade", json={'answers': {}}).status_code == 404
        assert client.post(f"/api/content/{session['id']}/quiz", json={'quiz_type': 'essay'}).status_code == 422


class TestWebSocket:

    def test_requires_presentation_id(self, client):
        with client.websocket_connect("/ws") as websocket:
            message = websocket.receive_json()
        assert message['type'] == "error"

    def test_command_bus(self, client):
        start(client)

        with client.websocket_connect("/ws?presentation_id=deck&client_type=viewer") as websocket:
            assert websocket.receive_json()['type'] == "client-connected"

            websocket.send_json({'type': 'ping'})
            assert websocket.receive_json()['type'] == "pong"

            websocket.send_json({'type': 'utterance', 'text': 'next slide', 'confidence': 0.9})
            received = []
            while True:
                message = websocket.receive_json()
                received.append(message['type'])
                if message['type'] == "utterance-handled":
                    break

            assert "next-slide" in received
            assert message['result']['executed'] is True

            websocket.send_json({'type': 'bogus'})
            assert websocket.receive_json()['type'] == "error"

    def test_non_object_message(self, client):
        start(client)

        with client.websocket_connect("/ws?presentation_id=deck") as websocket:
            websocket.receive_json()

            websocket.send_text("[1, 2]")
            reply = websocket.receive_json()
            assert reply == {'type': 'error', 'message': 'Invalid message', 'timestamp': reply['timestamp']}

            # Connection survives
            websocket.send_json({'type': 'ping'})
            assert websocket.receive_json()['type'] == "pong"
