from cloudly.db.models.user import User
from cloudly.db.models.song import Song
from cloudly.db.models.playlist import Playlist, PlaylistSong
from cloudly.db.models.activity import LikedSong, ListeningHistory

__all__ = ["User", "Song", "Playlist", "PlaylistSong", "LikedSong", "ListeningHistory"]
