"""
Unit tests for room models.
Tests: PortRange, RoomSettings, RoomEntry
"""
from datetime import datetime, timezone

import pytest

from rooms.errors import InvalidRequestError, InvalidSettingsError
from rooms.models import PortRange, RoomEntry, RoomSettings


class TestPortRange:
    """Tests for PortRange."""

    def test_size(self):
        assert PortRange(59000, 59004).size == 5
        assert PortRange(59000, 59000).size == 1

    def test_inverted(self):
        with pytest.raises(ValueError):
            PortRange(10, 9)

    def test_overlaps(self):
        assert PortRange(1, 5).overlaps(PortRange(5, 9))
        assert PortRange(3, 4).overlaps(PortRange(1, 9))
        assert not PortRange(1, 4).overlaps(PortRange(5, 9))

    def test_contains(self):
        assert PortRange(1, 9).contains(PortRange(1, 9))
        assert not PortRange(1, 9).contains(PortRange(0, 3))

    def test_ports(self):
        assert list(PortRange(7, 9).ports()) == [7, 8, 9]

    def test_str(self):
        assert str(PortRange(59000, 59004)) == '59000-59004'


class TestRoomSettingsValidate:
    """Tests for RoomSettings.validate."""

    def test_defaults_valid(self):
        RoomSettings().validate()

    @pytest.mark.parametrize('name', ['a/b', 'has space', '../up', 'x' * 65, 'ünïcode'])
    def test_unsafe_name(self, name):
        with pytest.raises(InvalidSettingsError):
            RoomSettings(name=name).validate()

    @pytest.mark.parametrize('value', [0, -3, '5', True])
    def test_bad_max_connections(self, value):
        with pytest.raises(InvalidSettingsError):
            RoomSettings(max_connections=value).validate()

    def test_invalid_settings_is_invalid_request(self):
        with pytest.raises(InvalidRequestError):
            RoomSettings(max_connections=0).validate()

    @pytest.mark.parametrize('kwargs', [
        {'video_codec': 'AV1'},
        {'audio_codec': 'MP3'},
        {'screen': '1280x720'},
        {'video_bitrate': -1},
        {'audio_bitrate': '128'},
    ])
    def test_bad_options(self, kwargs):
        with pytest.raises(InvalidSettingsError):
            RoomSettings(**kwargs).validate()

    @pytest.mark.parametrize('field', RoomSettings.STRING_FIELDS)
    @pytest.mark.parametrize('value', [5, ['a'], None])
    def test_string_field_types(self, field, value):
        """Wrong JSON types are rejected, not left to fail later."""
        with pytest.raises(InvalidSettingsError) as exc:
            RoomSettings(**{field: value}).validate()
        assert field in str(exc.value)

    @pytest.mark.parametrize('field', ['control_protection', 'implicit_control'])
    @pytest.mark.parametrize('value', ['yes', 1, None])
    def test_bool_field_types(self, field, value):
        with pytest.raises(InvalidSettingsError) as exc:
            RoomSettings(**{field: value}).validate()
        assert field in str(exc.value)


class TestRoomSettingsEnv:
    """Tests for environment conversion."""

    def test_to_env(self):
        settings = RoomSettings(
            user_pass='neko',
            admin_pass='admin',
            control_protection=True,
            screen='1920x1080@30',
            video_codec='VP8',
            audio_codec='OPUS',
            video_bitrate=3000,
        )

        assert settings.to_env() == [
            'NEKO_PASSWORD=neko',
            'NEKO_PASSWORD_ADMIN=admin',
            'NEKO_CONTROL_PROTECTION=true',
            'NEKO_IMPLICIT_CONTROL=false',
            'NEKO_SCREEN=1920x1080@30',
            'NEKO_VIDEO_BITRATE=3000',
            'NEKO_VP8=true',
            'NEKO_OPUS=true',
        ]

    def test_empty_options_omitted(self):
        env = RoomSettings().to_env()
        assert env == ['NEKO_CONTROL_PROTECTION=false', 'NEKO_IMPLICIT_CONTROL=false']

    def test_from_env_restores_options(self):
        original = RoomSettings(
            name='lobby',
            max_connections=5,
            user_pass='p=ss',
            implicit_control=True,
            video_codec='H264',
            video_max_fps=25,
            audio_codec='PCMA',
            audio_pipeline='pulsesrc ! audioconvert',
            broadcast_pipeline='flvmux name=mux',
        )
        env = ['NEKO_BIND=:8080', 'PATH=/usr/bin'] + original.to_env()

        restored = RoomSettings.from_env(env, name='lobby', max_connections=5)

        assert restored == original

    def test_from_env_bad_int(self):
        with pytest.raises(ValueError):
            RoomSettings.from_env(['NEKO_MAX_FPS=fast'])


class TestRoomSettingsDict:
    """Tests for from_dict/to_dict."""

    def test_from_dict(self):
        settings = RoomSettings.from_dict({'name': 'lobby', 'max_connections': 3})
        assert settings.name == 'lobby'
        assert settings.max_connections == 3

    def test_unknown_keys(self):
        with pytest.raises(InvalidSettingsError) as exc:
            RoomSettings.from_dict({'name': 'lobby', 'gpu': True})
        assert 'gpu' in str(exc.value)

    def test_to_dict_keys(self):
        data = RoomSettings(name='lobby').to_dict()
        assert data['name'] == 'lobby'
        assert 'ENV_FIELDS' not in data
        assert RoomSettings.from_dict(data) == RoomSettings(name='lobby')


class TestRoomEntry:
    """Tests for RoomEntry.to_dict."""

    def test_to_dict(self):
        entry = RoomEntry(
            id='abc',
            url='http://rooms.test/lobby/',
            name='lobby',
            max_connections=5,
            image='m1k1o/neko:latest',
            running=True,
            status='Up 2 minutes',
            created=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

        data = entry.to_dict()
        assert data['created'] == '2024-01-01T00:00:00+00:00'
        assert data['max_connections'] == 5
        assert data['running'] is True
