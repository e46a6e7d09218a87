"""
Session management module.

Import the coordinator from callsignal.services.session.coordinator and the
exceptions from callsignal.services.session.exceptions; this package stays
import-light so the wire schemas can depend on the exceptions.
"""
