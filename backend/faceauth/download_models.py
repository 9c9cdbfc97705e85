import os
import sys
import urllib.request

from .config import Settings


def download_file(url, filename):
    print(f"Downloading {filename}...")
    urllib.request.urlretrieve(url, filename)
    print(f"Downloaded {filename}")


def main():
    settings = Settings.from_env()
    model_path = settings.embedding_model_path

    if os.path.exists(model_path):
        print(f"Embedding model already present at {model_path}")
        return True

    if not settings.embedding_model_url:
        print("FACEAUTH_EMBEDDING_MODEL_URL is not set.")
        print(f"Please place the embedding model file at {model_path}")
        return False

    # Create model directory if it doesn't exist
    os.makedirs(os.path.dirname(model_path) or '.', exist_ok=True)

    try:
        download_file(settings.embedding_model_url, model_path)
    except Exception as e:
        print(f"Error downloading {model_path}: {str(e)}")
        print("Please download the embedding model manually and place it at:")
        print(f"  {model_path}")
        return False
    return True


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
