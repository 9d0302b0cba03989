import argparse
import logging
import mimetypes
import os
import sys

from capture import CameraCapture
from errors import FutureSelfError
from generation_client import DEFAULT_ENDPOINT, GenerationClient
from pipeline import run_generation, save_result
from session import AppState, SourceImage, new_session, select_image, set_prompt, start_capture


def load_source(path):
    with open(path, "rb") as f:
        data = f.read()
    mime_type = mimetypes.guess_type(path)[0] or "image/jpeg"
    return SourceImage(data=data, filename=os.path.basename(path), mime_type=mime_type)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Visualize your future self.")
    parser.add_argument("photo", help="portrait to age, or 'camera' to take one")
    parser.add_argument("prompt", help="where do you see yourself?")
    parser.add_argument("--endpoint", default=os.getenv("FUTURE_SELF_ENDPOINT", DEFAULT_ENDPOINT))
    parser.add_argument("--output", default="future-self.png")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    session = new_session()
    try:
        if args.photo == "camera":
            session = start_capture(session)
            with CameraCapture() as camera:
                session = select_image(session, camera.capture())
        else:
            session = select_image(session, load_source(args.photo))
    except (FutureSelfError, OSError) as e:
        print(f"Could not load photo: {e}")
        return 1
    session = set_prompt(session, args.prompt)

    session = run_generation(session, GenerationClient(args.endpoint))
    if session.state != AppState.RESULT:
        print(session.error or "Nothing to generate: a photo and a prompt are required.")
        return 1

    print(f"Saved {save_result(session, args.output)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
