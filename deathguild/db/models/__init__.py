from deathguild.db.models.playlist import Playlist
from deathguild.db.models.song import Song
from deathguild.db.models.playlist_song import PlaylistSong
from deathguild.db.models.special_playlist import SpecialPlaylist

__all__ = [
    "Playlist",
    "Song",
    "PlaylistSong",
    "SpecialPlaylist",
]
