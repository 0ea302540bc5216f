"""
Script para obtener el GOOGLE_REFRESH_TOKEN (una sola vez).
Abre el consentimiento de Google con la cuenta dueña de las planillas y
muestra el refresh token para copiarlo al .env.

Ejecutar: python scripts/get_google_token.py
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from google_auth_oauthlib.flow import InstalledAppFlow

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
PORT = int(os.getenv("OAUTH_HELPER_PORT", "3000"))


def main() -> int:
    load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

    client_id = os.getenv("GOOGLE_CLIENT_ID")
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        print("❌ Faltan GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET en .env")
        return 1

    client_config = {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": [f"http://localhost:{PORT}/"],
        }
    }
    flow = InstalledAppFlow.from_client_config(client_config, scopes=SCOPES)

    print(f"➡  Helper escuchando en http://localhost:{PORT}")
    print("Autorizá el acceso con la cuenta de Google dueña de las planillas.\n")
    # prompt=consent fuerza a Google a devolver un refresh token nuevo
    credentials = flow.run_local_server(port=PORT, access_type="offline", prompt="consent")

    print("\n✅ Tokens recibidos de Google:")
    print(f"Access token: {credentials.token}")
    print(f"Refresh token: {credentials.refresh_token or '(ninguno!)'}")

    if not credentials.refresh_token:
        print("\n⚠ Google no devolvió refresh token. Revocá el acceso de la app y probá de nuevo.")
        return 1

    print("\nCopiá el refresh token a GOOGLE_REFRESH_TOKEN en el .env")
    return 0


if __name__ == "__main__":
    sys.exit(main())
