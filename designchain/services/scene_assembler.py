"""
3-D scene generation and assembly.

``SceneCodeAssembler`` turns model text into a navigable document:
    1. a ```js / ```javascript fence is injected into ``SCENE_HARNESS``
    2. otherwise a complete ``<html>`` document is used as-is
    3. otherwise the cleaned text itself is returned (may not render)

Generated code runs inside the harness module scope and can use ``THREE``,
``scene``, ``camera``, ``renderer`` and push solid meshes into ``collidables``.
"""
import logging
from typing import Optional

from designchain.core.exceptions import ErrorKind
from designchain.core.result import Deadline, Err, Ok, Result
from designchain.engines.generation.schemas import ImageBlob, SceneArtifact, Turn
from designchain.services.model_gateway import TEXT_MODE, GeminiModelGateway
from designchain.services.response_parser import extract_code, extract_html, extract_text_or_whole, strip_non_ascii

logger = logging.getLogger(__name__)

SCENE_CODE_MARKER = "/* __SCENE_CODE__ */"

SCENE_HARNESS = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Interior Scene</title>
  <style>
    html, body { margin: 0; height: 100%; overflow: hidden; background: #111; }
    #scene-canvas { display: block; width: 100%; height: 100%; }
    #mode-toggle {
      position: absolute; top: 12px; right: 12px; z-index: 10;
      padding: 8px 14px; border: 0; border-radius: 6px;
      background: rgba(255, 255, 255, 0.85); font: 14px sans-serif; cursor: pointer;
    }
    #hint {
      position: absolute; bottom: 12px; left: 12px; z-index: 10;
      color: #eee; font: 12px sans-serif; text-shadow: 0 1px 2px #000;
    }
  </style>
  <script type="importmap">
    {
      "imports": {
        "three": "https://cdn.jsdelivr.net/npm/three@0.160.0/build/three.module.js",
        "three/addons/": "https://cdn.jsdelivr.net/npm/three@0.160.0/examples/jsm/"
      }
    }
  </script>
</head>
<body>
  <canvas id="scene-canvas"></canvas>
  <button id="mode-toggle" type="button">Switch to first-person</button>
  <div id="hint">Orbit: drag to rotate, scroll to zoom. Press T to toggle modes.</div>
  <script type="module">
    import * as THREE from "three";
    import { OrbitControls } from "three/addons/controls/OrbitControls.js";
    import { PointerLockControls } from "three/addons/controls/PointerLockControls.js";

    const canvas = document.getElementById("scene-canvas");
    const renderer = new THREE.WebGLRenderer({ canvas, antialias: true });
    renderer.setPixelRatio(window.devicePixelRatio);
    renderer.setSize(window.innerWidth, window.innerHeight);
    renderer.shadowMap.enabled = true;

    const scene = new THREE.Scene();
    scene.background = new THREE.Color(0xdddddd);
    const camera = new THREE.PerspectiveCamera(70, window.innerWidth / window.innerHeight, 0.05, 200);
    camera.position.set(0, 1.6, 4);
    const collidables = [];

    const orbit = new OrbitControls(camera, renderer.domElement);
    orbit.target.set(0, 1, 0);
    orbit.enableDamping = true;
    const firstPerson = new PointerLockControls(camera, document.body);

    let mode = "orbit";
    const toggle = document.getElementById("mode-toggle");
    const hint = document.getElementById("hint");

    function setMode(next) {
      mode = next;
      orbit.enabled = mode === "orbit";
      if (mode === "orbit") {
        firstPerson.unlock();
        toggle.textContent = "Switch to first-person";
        hint.textContent = "Orbit: drag to rotate, scroll to zoom. Press T to toggle modes.";
      } else {
        camera.position.y = 1.6;
        firstPerson.lock();
        toggle.textContent = "Switch to orbit";
        hint.textContent = "First-person: WASD to move, mouse to look, Esc to release. Press T to toggle modes.";
      }
    }
    toggle.addEventListener("click", () => setMode(mode === "orbit" ? "firstPerson" : "orbit"));

    const keys = { KeyW: false, KeyA: false, KeyS: false, KeyD: false };
    document.addEventListener("keydown", (event) => {
      if (event.code in keys) keys[event.code] = true;
      if (event.code === "KeyT") setMode(mode === "orbit" ? "firstPerson" : "orbit");
    });
    document.addEventListener("keyup", (event) => {
      if (event.code in keys) keys[event.code] = false;
    });
    renderer.domElement.addEventListener("click", () => {
      if (mode === "firstPerson" && !firstPerson.isLocked) firstPerson.lock();
    });

    const raycaster = new THREE.Raycaster();
    function blocked(direction, distance) {
      if (!collidables.length) return false;
      raycaster.set(camera.position, direction);
      raycaster.far = distance + 0.3;
      return raycaster.intersectObjects(collidables, true).length > 0;
    }

    function moveFirstPerson(delta) {
      const speed = 2.5 * delta;
      const forward = new THREE.Vector3();
      camera.getWorldDirection(forward);
      forward.y = 0;
      forward.normalize();
      const right = new THREE.Vector3().crossVectors(forward, camera.up).normalize();
      const step = new THREE.Vector3();
      if (keys.KeyW) step.add(forward);
      if (keys.KeyS) step.sub(forward);
      if (keys.KeyD) step.add(right);
      if (keys.KeyA) step.sub(right);
      if (step.lengthSq() === 0) return;
      step.normalize();
      if (!blocked(step, speed)) camera.position.addScaledVector(step, speed);
    }

    window.addEventListener("resize", () => {
      camera.aspect = window.innerWidth / window.innerHeight;
      camera.updateProjectionMatrix();
      renderer.setSize(window.innerWidth, window.innerHeight);
    });

    /* __SCENE_CODE__ */

    const clock = new THREE.Clock();
    function animate() {
      requestAnimationFrame(animate);
      const delta = clock.getDelta();
      if (mode === "orbit") {
        orbit.update();
      } else if (firstPerson.isLocked) {
        moveFirstPerson(delta);
      }
      renderer.render(scene, camera);
    }
    animate();
  </script>
</body>
</html>
"""

SCENE_PROMPT = """
Given an image of an indoor scene, write three.js code that builds a realistic and spatially accurate scene replicating the image.

The code will be inserted into an existing page that already provides these variables:
- THREE: the three.js module
- scene: a THREE.Scene to add every object and light to
- camera: a THREE.PerspectiveCamera placed at eye level (1.6 meters)
- renderer: a THREE.WebGLRenderer with shadows enabled
- collidables: an array; push every solid mesh (walls, furniture) into it for collision detection
Navigation controls, resize handling and the animation loop already exist. Do not create a renderer, camera, controls or animation loop.

Scene Construction:
Recreate all visible objects, furniture, walls, floors, ceilings, and windows.
Ensure each element has the correct position, size, scale, and orientation relative to other elements.
Make windows transparent with visible borders.

Visual Detail:
Use basic but effective materials (matte, glossy, transparent) to reflect the real-world surfaces.
Use distinct colors to visually separate similar items. Do not load external textures or models.

Lighting:
Match the lighting conditions of the image using directional and ambient light, with realistic shadows.

Camera:
Set camera.position and camera.lookAt so the starting perspective closely matches the original image.

First note the relative positions of all objects in the image, considering depth and perspective.
If you need more than one of the same item, write a function that builds it and call it multiple times.
Return only the code in a single ```javascript fenced block.
"""


class SceneCodeAssembler:
    """Embeds generated scene code into the fixed navigable harness"""

    def __init__(self, harness: str = SCENE_HARNESS, marker: str = SCENE_CODE_MARKER):
        if marker not in harness:
            raise ValueError("Scene harness has no code insertion point")
        self.harness = harness
        self.marker = marker

    def embed(self, code: str) -> str:
        return self.harness.replace(self.marker, code, 1)

    def assemble(self, raw_model_text: str) -> SceneArtifact:
        cleaned = strip_non_ascii(raw_model_text)

        code = extract_code(cleaned)
        if code is not None:
            logger.info(f"Embedding {len(code)} chars of scene code into harness")
            return SceneArtifact(html=self.embed(code), kind="assembled", code=code)

        document = extract_html(cleaned)
        if document is not None:
            logger.info("Model returned a complete HTML document, using it unmodified")
            return SceneArtifact(html=document, kind="document")

        logger.warning("No code fence or HTML document in scene response, returning raw text")
        return SceneArtifact(html=extract_text_or_whole(cleaned), kind="raw")


class SceneGenerator:
    """Asks the model for scene code from an image and assembles the result"""

    def __init__(self, gateway: GeminiModelGateway, assembler: Optional[SceneCodeAssembler] = None):
        self.gateway = gateway
        self.assembler = assembler or SceneCodeAssembler()

    async def generate(self, image: ImageBlob, deadline: Optional[Deadline] = None) -> Result[SceneArtifact]:
        result = await self.gateway.generate(
            [Turn(text=SCENE_PROMPT, image=image)],
            TEXT_MODE,
            deadline=deadline,
            model=self.gateway.settings.gemini_scene_model,
        )
        if result.error:
            return Err(result.error_kind or ErrorKind.UPSTREAM, result.error)
        if not result.text:
            return Err(ErrorKind.UPSTREAM_EMPTY, "No HTML content was generated in the response")
        return Ok(self.assembler.assemble(result.text))
