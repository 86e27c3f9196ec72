"""Collaborative session: collaborator contracts, events, and the state machine.

Import CollaborativeSession from collab_reader.session.machine; this
package module stays import-free so the audio layer can depend on the
collaborator contracts without pulling in the state machine.
"""
