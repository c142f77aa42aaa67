# This script is meant to be run one time, before the first archive run or before starting the API.
# It takes the client secret of a Desktop OAuth client (GMAIL_CREDENTIALS_PATH), asks the user for
# consent and stores the resulting token (GMAIL_TOKEN_PATH), which is then reused and refreshed.
# Set OAUTH_MODE=console when no browser can reach the local redirect listener.

from mail_archiver.config import CFG
from mail_archiver.services.auth import authorize


def main():
    print("Using credentials file:", CFG.gmail_credentials_path)
    authorize(CFG)
    print(f"Success! {CFG.gmail_token_path} created. This file contains your secret key.")


if __name__ == "__main__":
    main()
