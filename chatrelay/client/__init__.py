"""
CLIENT PACKAGE
==============

  state       - ClientState: identity token + theme, persisted in a local JSON file.
  chat_client - ChatClient: local transcript mirrored from the relay's history.
"""
