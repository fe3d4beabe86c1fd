from __future__ import annotations

import pytest

import logind_idle_control
from logind_idle_control.session import SessionInfo, get_current_session

from conftest import SESSION_PATH


@pytest.mark.parametrize('session_type', ['x11', 'wayland'])
def test_graphical_session(gateway, session_type) -> None:
	gateway.properties[(SESSION_PATH, 'Type')] = session_type

	assert get_current_session(gateway) == SessionInfo('c2-1', SESSION_PATH)
	by_pid = [c for c in gateway.calls if c[4] == 'GetSessionByPID']
	assert len(by_pid) == 1


@pytest.mark.parametrize('session_type', ['tty', 'unspecified', 'mir'])
def test_non_graphical_session_is_fatal(gateway, session_type) -> None:
	gateway.properties[(SESSION_PATH, 'Type')] = session_type

	with pytest.raises(logind_idle_control.UserError, match='Not a graphical session'):
		get_current_session(gateway)


def test_falls_back_to_xdg_session_id(gateway, monkeypatch) -> None:
	gateway.session_by_pid_error = logind_idle_control.BusError('PID does not belong to any known session')
	monkeypatch.setenv('XDG_SESSION_ID', 'c2-1')

	assert get_current_session(gateway).id == 'c2-1'
	get_session = [c for c in gateway.calls if c[4] == 'GetSession']
	assert get_session[0][5] == ('c2-1',)


def test_no_session_is_fatal(gateway, monkeypatch) -> None:
	gateway.session_by_pid_error = logind_idle_control.BusError('PID does not belong to any known session')
	monkeypatch.delenv('XDG_SESSION_ID', raising=False)

	with pytest.raises(logind_idle_control.UserError, match='Failed to find the current logind session'):
		get_current_session(gateway)
