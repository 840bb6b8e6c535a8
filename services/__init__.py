"""Account workflows (registration, sessions, profile) and the media uploader they use."""
