"""
Tests for the knowledge-base chat API.

The completion service is replaced with a fake so no request leaves the process.
"""

import json
from unittest.mock import MagicMock

import pytest

from studysync.actions import flashcards
from studysync.services.openrouter import OpenRouterError


def _events(resp):
    return [line[len('data: '):] for line in resp.get_data(as_text=True).split('\n') if line.startswith('data: ')]


@pytest.fixture
def fake_llm(monkeypatch):
    service = MagicMock()
    service.chat_completion_stream.side_effect = lambda messages, **kwargs: iter(['Hello', ' there'])
    service.chat_completion.return_value = 'Hi!'
    monkeypatch.setattr('studysync.routes.chat.OpenRouterService', lambda *args, **kwargs: service)
    return service


@pytest.fixture
def thread_id(auth_client):
    resp = auth_client.post('/api/chat/threads', json={})
    assert resp.status_code == 201
    return resp.get_json()['thread']['id']


class TestThreads:

    def test_requires_login(self, client):
        resp = client.get('/api/chat/threads')
        assert resp.status_code == 401
        assert resp.get_json()['code'] == 'NOT_AUTHENTICATED'

    def test_create_thread_defaults(self, auth_client):
        resp = auth_client.post('/api/chat/threads', json={})
        thread = resp.get_json()['thread']
        assert resp.status_code == 201
        assert thread['title'] == 'New Chat'
        assert thread['use_general_knowledge'] is False

    def test_list_threads_newest_first(self, auth_client):
        auth_client.post('/api/chat/threads', json={'title': 'First'})
        auth_client.post('/api/chat/threads', json={'title': 'Second', 'useGeneralKnowledge': True})

        threads = auth_client.get('/api/chat/threads').get_json()['threads']
        assert [t['title'] for t in threads] == ['Second', 'First']
        assert threads[0]['use_general_knowledge'] is True

    def test_update_thread(self, auth_client, thread_id):
        resp = auth_client.put(f'/api/chat/threads/{thread_id}', json={'title': 'Renamed', 'useGeneralKnowledge': True})
        assert resp.status_code == 200
        assert resp.get_json()['thread']['title'] == 'Renamed'
        assert resp.get_json()['thread']['use_general_knowledge'] is True

    def test_delete_thread(self, auth_client, thread_id):
        assert auth_client.delete(f'/api/chat/threads/{thread_id}').get_json() == {'success': True}
        assert auth_client.get(f'/api/chat/threads/{thread_id}').status_code == 404

    def test_delete_all_threads(self, auth_client):
        auth_client.post('/api/chat/threads', json={})
        auth_client.post('/api/chat/threads', json={})
        assert auth_client.delete('/api/chat/threads/delete-all').status_code == 200
        assert auth_client.get('/api/chat/threads').get_json()['threads'] == []

    def test_foreign_thread_is_hidden(self, app, auth_client, thread_id, make_user):
        make_user(username='intruder', email='intruder@example.com')
        other = app.test_client()
        other.post('/login', json={'email': 'intruder@example.com', 'password': 'password'})

        resp = other.get(f'/api/chat/threads/{thread_id}')
        assert resp.status_code == 404
        assert resp.get_json() == {'error': 'Thread not found or access denied'}
        assert other.delete(f'/api/chat/threads/{thread_id}').status_code == 404


class TestMessages:

    def test_streamed_reply_is_persisted(self, auth_client, thread_id, fake_llm):
        resp = auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'What is osmosis?'})
        assert resp.status_code == 200
        assert resp.mimetype == 'text/event-stream'

        events = _events(resp)
        assert events[-1] == '[DONE]'
        assert [json.loads(e)['content'] for e in events[:-1]] == ['Hello', ' there']

        data = auth_client.get(f'/api/chat/threads/{thread_id}').get_json()
        assert [(m['role'], m['content']) for m in data['messages']] == [
            ('user', 'What is osmosis?'),
            ('assistant', 'Hello there'),
        ]

    def test_first_message_titles_thread(self, auth_client, thread_id, fake_llm):
        long_question = 'x' * 60
        auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': long_question, 'stream': False})
        title = auth_client.get(f'/api/chat/threads/{thread_id}').get_json()['thread']['title']
        assert title == 'x' * 50 + '...'

    def test_non_streamed_reply(self, auth_client, thread_id, fake_llm):
        resp = auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'Hi', 'stream': False})
        assert resp.status_code == 200
        assert resp.get_json()['role'] == 'assistant'
        assert resp.get_json()['content'] == 'Hi!'

    def test_history_is_sent_with_system_prompt(self, auth_client, thread_id, fake_llm):
        auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'One', 'stream': False})
        auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'Two', 'stream': False})

        messages = fake_llm.chat_completion.call_args[0][0]
        assert messages[0]['role'] == 'system'
        assert [m['content'] for m in messages[1:]] == ['One', 'Hi!', 'Two']

    def test_empty_message_is_rejected(self, auth_client, thread_id, fake_llm):
        resp = auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': '   '})
        assert resp.status_code == 400

    def test_upstream_failure_non_streamed(self, auth_client, thread_id, fake_llm):
        fake_llm.chat_completion.side_effect = OpenRouterError('upstream down')
        resp = auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'Hi', 'stream': False})
        assert resp.status_code == 502
        assert resp.get_json()['error'] == 'upstream down'

    def test_upstream_failure_streamed(self, auth_client, thread_id, fake_llm):
        def failing(messages, **kwargs):
            raise OpenRouterError('upstream down')
            yield

        fake_llm.chat_completion_stream.side_effect = failing
        resp = auth_client.post(f'/api/chat/threads/{thread_id}/messages', json={'content': 'Hi'})
        events = _events(resp)
        assert json.loads(events[0]) == {'error': 'upstream down'}
        assert events[-1] == '[DONE]'

        messages = auth_client.get(f'/api/chat/threads/{thread_id}').get_json()['messages']
        assert [m['role'] for m in messages] == ['user']


class TestKnowledgeBaseChat:

    def test_context_from_own_decks(self, app, auth_client, user_id, login_as, fake_llm):
        with login_as(user_id):
            deck_id = flashcards.create_flashcard_deck('Photosynthesis')
            flashcards.create_flashcard(deck_id, 'What is photosynthesis?', 'Plants converting light into chemical energy')

        resp = auth_client.post('/api/chat', json={'messages': [
            {'role': 'user', 'content': 'What is photosynthesis? Plants converting light into chemical energy'},
        ]})
        assert _events(resp)[-1] == '[DONE]'

        messages = fake_llm.chat_completion_stream.call_args[0][0]
        system = messages[0]
        assert system['role'] == 'system'
        assert 'Only use the provided context' in system['content']
        assert 'Q: What is photosynthesis?' in system['content']

    def test_general_knowledge_prompt(self, auth_client, fake_llm):
        auth_client.post('/api/chat', json={
            'messages': [{'role': 'user', 'content': 'Hello'}],
            'useGeneralKnowledge': True,
        }).get_data()
        system = fake_llm.chat_completion_stream.call_args[0][0][0]
        assert 'general knowledge' in system['content']

    @pytest.mark.parametrize('body', [
        {},
        {'messages': []},
        {'messages': 'hello'},
        {'messages': [{'role': 'robot', 'content': 'x'}]},
    ])
    def test_invalid_history(self, auth_client, fake_llm, body):
        assert auth_client.post('/api/chat', json=body).status_code == 400
