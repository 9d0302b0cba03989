import base64
import binascii

from flask import Flask, request, jsonify
from flask_cors import CORS

from config import Config
from generation import extract_result, generate_future_self, make_client
from system_prompt import REFUSAL_FALLBACK, build_aging_prompt

CORS_METHODS = ["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"]
CORS_HEADERS = [
    "X-CSRF-Token", "X-Requested-With", "Accept", "Accept-Version",
    "Content-Length", "Content-MD5", "Content-Type", "Date", "X-Api-Version",
]


def install_cors(app):
    """Permissive CORS for every response, preflight included."""
    CORS(
        app,
        origins="*",
        send_wildcard=True,
        methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )


def create_app(config=None, client_factory=None):
    config = config or Config.from_env()
    client_factory = client_factory or make_client

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    install_cors(app)

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(_e):
        return jsonify({"error": "Image is too large. Please use a smaller photo."}), 413

    @app.route("/")
    def index():
        return HTML_PAGE

    @app.route("/api/generate", methods=["POST"])
    def generate():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        image = data.get("image") or ""
        mime_type = data.get("mimeType") or "image/jpeg"
        prompt = data.get("prompt") or ""

        if not isinstance(image, str) or not isinstance(prompt, str):
            return jsonify({"error": "Missing image or prompt"}), 400
        if not image or not prompt.strip():
            return jsonify({"error": "Missing image or prompt"}), 400

        if not config.api_key:
            app.logger.error("GEMINI_API_KEY is not set in server environment.")
            return jsonify({"error": "Server configuration error: API key missing"}), 500

        try:
            image_bytes = base64.b64decode(image, validate=True)
        except (binascii.Error, ValueError):
            return jsonify({"error": "Invalid image data"}), 400

        try:
            client = client_factory(config)
            response = generate_future_self(
                client,
                config.model,
                image_bytes,
                mime_type,
                build_aging_prompt(prompt, config.target_age),
            )
            result = extract_result(response)
        except Exception as e:
            app.logger.exception("Image generation failed")
            return jsonify({"error": str(e) or "Internal Server Error"}), 500

        if not result.ok:
            message = result.text or REFUSAL_FALLBACK
            app.logger.warning("Model output text instead of image: %s", message)
            return jsonify({"error": message}), 422

        return jsonify({"imageUrl": result.image_url})

    return app


HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Future Self Studio</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #f8fafc;
    color: #0f172a;
    min-height: 100vh;
  }

  header { text-align: center; padding: 40px 16px 24px; }
  header h1 { font-size: 2.4rem; font-weight: 800; letter-spacing: -0.02em; }
  header h1 span { color: #c02126; }
  header p { color: #475569; margin-top: 10px; }

  .card {
    max-width: 880px;
    margin: 0 auto 40px;
    background: #fff;
    border-radius: 20px;
    box-shadow: 0 10px 30px rgba(15, 23, 42, 0.08);
    min-height: 400px;
    overflow: hidden;
  }

  .surface { display: none; padding: 32px; }
  .surface.active { display: flex; }

  #idle { flex-direction: column; align-items: center; justify-content: center; gap: 16px; }
  #capturing { flex-direction: column; align-items: center; gap: 16px; background: #0f172a; }
  #capturing video { width: 100%; max-height: 480px; border-radius: 12px; object-fit: cover; }
  #preview, #result { gap: 24px; flex-wrap: wrap; }
  #preview > div, #result > div { flex: 1 1 320px; }
  #generating { flex-direction: column; align-items: center; justify-content: center; text-align: center; }

  img.photo { width: 100%; max-height: 400px; object-fit: contain; border-radius: 10px; }

  textarea {
    width: 100%;
    padding: 14px;
    border: 1px solid #cbd5e1;
    border-radius: 12px;
    font: inherit;
    resize: none;
  }

  button {
    display: block;
    width: 100%;
    margin-top: 12px;
    padding: 12px 18px;
    border-radius: 12px;
    border: 2px solid #c02126;
    background: #c02126;
    color: #fff;
    font-weight: 600;
    cursor: pointer;
  }
  button.outline { background: #fff; color: #c02126; }
  button:disabled { opacity: 0.5; cursor: not-allowed; }

  .error {
    display: none;
    margin-top: 12px;
    padding: 10px 12px;
    border-radius: 8px;
    background: #fef2f2;
    color: #b91c1c;
    font-size: 0.9rem;
  }
  .error.visible { display: block; }

  .spinner {
    width: 80px; height: 80px;
    border: 4px solid #e2e8f0;
    border-top-color: #c02126;
    border-radius: 50%;
    animation: spin 0.8s linear infinite;
    margin-bottom: 20px;
  }
  @keyframes spin { to { transform: rotate(360deg); } }
</style>
</head>
<body>
<header>
  <h1>Plan your retirement <span>right here right now</span></h1>
  <p>Upload your photo, describe your ideal lifestyle, and let us visualize your future self.</p>
</header>

<main class="card">
  <section id="idle" class="surface active">
    <h3>Upload your photo</h3>
    <input type="file" id="fileInput" accept="image/*" hidden>
    <div style="width: 100%; max-width: 360px;">
      <button id="chooseBtn">Choose File</button>
      <button id="cameraBtn" class="outline">Take Photo</button>
    </div>
  </section>

  <section id="capturing" class="surface">
    <video id="video" autoplay playsinline></video>
    <div class="error" id="cameraError"></div>
    <div style="width: 100%; max-width: 360px;">
      <button id="snapBtn">Capture</button>
      <button id="cancelCameraBtn" class="outline">Cancel</button>
    </div>
  </section>

  <section id="preview" class="surface">
    <div><img id="previewImg" class="photo" alt="Current You"></div>
    <div>
      <h3>Your Vision</h3>
      <label for="prompt">Where do you see yourself?</label>
      <textarea id="prompt" rows="5"
        placeholder="e.g. Traveling through Tuscany, enjoying a vineyard tour, looking stylish and relaxed..."></textarea>
      <div class="error" id="error"></div>
      <button id="generateBtn" disabled>Generate Vision</button>
      <button class="outline reset">Start Over</button>
    </div>
  </section>

  <section id="generating" class="surface">
    <div class="spinner"></div>
    <h3>Creating your future...</h3>
    <p id="generatingText"></p>
  </section>

  <section id="result" class="surface">
    <div><img id="resultImg" class="photo" alt="Future You"></div>
    <div>
      <h3>Your Future</h3>
      <p id="resultPrompt"></p>
      <a id="downloadLink" download="future-self.png"><button>Download</button></a>
      <button class="outline reset">Start Over</button>
    </div>
  </section>
</main>

<script>
  const MAX_SIZE = 1024;
  const QUALITY = 0.8;
  const TIMEOUT_MS = 60000;

  const session = { state: 'IDLE', file: null, previewUrl: null, prompt: '', error: null, result: null };
  let stream = null;

  const $ = id => document.getElementById(id);
  const promptEl = $('prompt');

  function render() {
    document.querySelectorAll('.surface').forEach(s => {
      s.classList.toggle('active', s.id === session.state.toLowerCase());
    });
    if (session.previewUrl) $('previewImg').src = session.previewUrl;
    promptEl.value = session.prompt;
    $('generateBtn').disabled = !(session.file && session.prompt.trim());
    $('error').textContent = session.error || '';
    $('error').classList.toggle('visible', !!session.error);
    $('generatingText').textContent = 'We are visualizing your prompt "' + session.prompt + '" with your future self.';
    if (session.result) {
      $('resultImg').src = session.result.imageUrl;
      $('resultPrompt').textContent = session.result.prompt;
      $('downloadLink').href = session.result.imageUrl;
    }
  }

  function setState(state, changes) {
    Object.assign(session, changes || {}, { state });
    render();
  }

  function selectImage(file) {
    if (session.previewUrl) URL.revokeObjectURL(session.previewUrl);
    setState('PREVIEW', { file, previewUrl: URL.createObjectURL(file), error: null });
  }

  function resetApp() {
    stopCamera();
    if (session.previewUrl) URL.revokeObjectURL(session.previewUrl);
    setState('IDLE', { file: null, previewUrl: null, prompt: '', error: null, result: null });
  }

  // ── Image normalizer ──
  function resizeImage(file) {
    return new Promise((resolve, reject) => {
      const reader = new FileReader();
      reader.onerror = () => reject(new Error('Failed to read file'));
      reader.onload = event => {
        const img = new Image();
        img.onerror = () => reject(new Error('Failed to load image for resizing'));
        img.onload = () => {
          let width = img.width;
          let height = img.height;
          if (width > MAX_SIZE || height > MAX_SIZE) {
            if (width > height) {
              height = Math.round(height * MAX_SIZE / width);
              width = MAX_SIZE;
            } else {
              width = Math.round(width * MAX_SIZE / height);
              height = MAX_SIZE;
            }
          }
          const canvas = document.createElement('canvas');
          canvas.width = width;
          canvas.height = height;
          const ctx = canvas.getContext('2d');
          ctx.fillStyle = '#fff';
          ctx.fillRect(0, 0, width, height);
          ctx.drawImage(img, 0, 0, width, height);
          resolve(canvas.toDataURL('image/jpeg', QUALITY).split(',')[1]);
        };
        img.src = event.target.result;
      };
      reader.readAsDataURL(file);
    });
  }

  // ── Generation client ──
  async function generateFutureSelf(image, mimeType, prompt) {
    const controller = new AbortController();
    const timeoutId = setTimeout(() => controller.abort(), TIMEOUT_MS);
    try {
      const res = await fetch('/api/generate', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ image, mimeType, prompt }),
        signal: controller.signal,
      });
      const contentType = res.headers.get('content-type') || '';
      if (contentType.includes('text/html')) {
        throw new Error('API endpoint not found. Make sure the Flask server is running and serving /api/generate.');
      }
      if (!res.ok) {
        const data = await res.json().catch(() => ({}));
        throw new Error(data.error || 'Server error: ' + res.status);
      }
      const data = await res.json();
      if (!data.imageUrl) throw new Error('No image URL received from server');
      return data.imageUrl;
    } catch (err) {
      if (err.name === 'AbortError') {
        throw new Error('Request timed out. The image generation took too long.');
      }
      throw err;
    } finally {
      clearTimeout(timeoutId);
    }
  }

  async function handleGenerate() {
    if (!session.file || !session.prompt.trim()) return;
    setState('GENERATING', { error: null });
    try {
      let image;
      try {
        image = await resizeImage(session.file);
      } catch (e) {
        throw new Error('Failed to process image. Please try a different photo.');
      }
      const imageUrl = await generateFutureSelf(image, 'image/jpeg', session.prompt);
      setState('RESULT', { result: { imageUrl, prompt: session.prompt } });
    } catch (err) {
      console.error(err);
      setState('PREVIEW', { error: err.message || 'Failed to generate image. Please try again.' });
    }
  }

  // ── Camera ──
  function stopCamera() {
    if (stream) {
      stream.getTracks().forEach(track => track.stop());
      stream = null;
    }
  }

  async function startCamera() {
    setState('CAPTURING');
    $('cameraError').classList.remove('visible');
    try {
      stream = await navigator.mediaDevices.getUserMedia({
        video: { facingMode: 'user', width: { ideal: 1280 }, height: { ideal: 720 } },
        audio: false,
      });
      $('video').srcObject = stream;
    } catch (err) {
      console.error('Error accessing camera:', err);
      $('cameraError').textContent = 'Could not access camera. Please allow permissions or upload a file instead.';
      $('cameraError').classList.add('visible');
    }
  }

  function capturePhoto() {
    const video = $('video');
    if (!stream || !video.videoWidth) return;
    const canvas = document.createElement('canvas');
    canvas.width = video.videoWidth;
    canvas.height = video.videoHeight;
    canvas.getContext('2d').drawImage(video, 0, 0, canvas.width, canvas.height);
    canvas.toBlob(blob => {
      stopCamera();
      if (blob) selectImage(new File([blob], 'camera-capture.jpg', { type: 'image/jpeg' }));
    }, 'image/jpeg', 0.95);
  }

  $('chooseBtn').addEventListener('click', () => $('fileInput').click());
  $('fileInput').addEventListener('change', e => {
    if (e.target.files && e.target.files[0]) selectImage(e.target.files[0]);
    e.target.value = '';
  });
  $('cameraBtn').addEventListener('click', startCamera);
  $('snapBtn').addEventListener('click', capturePhoto);
  $('cancelCameraBtn').addEventListener('click', () => { stopCamera(); setState('IDLE'); });
  $('generateBtn').addEventListener('click', handleGenerate);
  document.querySelectorAll('.reset').forEach(b => b.addEventListener('click', resetApp));
  promptEl.addEventListener('input', () => {
    session.prompt = promptEl.value;
    $('generateBtn').disabled = !(session.file && session.prompt.trim());
  });
  window.addEventListener('beforeunload', stopCamera);

  render();
</script>
</body>
</html>
"""

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, port=5001, threaded=True)
