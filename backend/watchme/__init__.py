"""WatchMe backend: movie/TV discovery with friends, chat and AI blends."""
