import argparse
import logging
import os
import sys
import time
import numpy as np
import PIL.Image
from blackhole_renders import constants
from blackhole_renders.background import load_color_ramp, load_cubemap
from blackhole_renders.camera import CameraMode, FreeCamDirection, OrbitCamera
from blackhole_renders.core import FrameConfig, Renderer
from blackhole_renders.geodesic import IntegrationMode
from blackhole_renders.rendering import MarchSettings, QualitySettings, Termination, march


def build_renderer(color_map=None, skybox=None):
    """Renderer with optional on-disk assets."""
    color_ramp = load_color_ramp(color_map) if color_map else None
    background = load_cubemap(skybox) if skybox else None
    return Renderer(color_ramp=color_ramp, background=background)


def frame_for_camera(camera, width, height, fov=constants.DEFAULT_FOV_DEGREES, quality="medium",
                     mode=IntegrationMode.FAST, render_disk=True, lensing=True, time_sec=0.0):
    return FrameConfig(
        width=width, height=height,
        camera_position=camera.position(),
        view_orientation=camera.view_matrix(),
        fov_degrees=fov,
        render_disk=render_disk,
        gravitational_lensing=lensing,
        quality=QualitySettings.preset(quality),
        mode=mode,
        time_sec=time_sec,
    )


def detach_camera(camera, pan_right=0.0, pan_up=0.0):
    """Turn ``camera`` into a free camera where it stands, then slide it across the view."""
    camera.toggle_camera_type()
    camera.move_freecam(FreeCamDirection.RIGHT, pan_right)
    camera.move_freecam(FreeCamDirection.UP, pan_up)
    return camera


def render_image(renderer, args, output_dir="output"):
    """Render the single view described by the CLI arguments."""
    os.makedirs(output_dir, exist_ok=True)
    camera = OrbitCamera(azimuth=np.deg2rad(args.azimuth), elevation=np.deg2rad(args.elevation),
                         radius=args.radius)
    if args.free_cam:
        detach_camera(camera, args.pan_right, args.pan_up)
    config = frame_for_camera(camera, args.res, int(args.res * 0.5625), fov=args.fov,
                              quality=args.quality, mode=IntegrationMode(args.mode),
                              render_disk=not args.no_disk, lensing=not args.no_lensing,
                              time_sec=args.time)
    print(f"Rendering {config.width}x{config.height} ({config.mode.value}, {args.quality})...")
    t0 = time.time()
    img = renderer.render(config)
    path = os.path.join(output_dir, args.output)
    PIL.Image.fromarray(img).save(path)
    print(f"  Complete in {time.time() - t0:.2f}s -> {path}")
    return path


def generate_samples(renderer, resolution=1024, quality="high", output_dir="output"):
    """Generate high-resolution production samples."""
    print(f"\n--- Generating Production Samples ({resolution}x{resolution}) ---")
    os.makedirs(output_dir, exist_ok=True)

    samples = [
        ("Orbit", OrbitCamera(), IntegrationMode.FAST, "production_orbit.png"),
        ("Edge-on", OrbitCamera(azimuth=0.0, elevation=np.pi * 0.48, radius=20.0),
         IntegrationMode.FAST, "production_edge_on.png"),
        ("Top", OrbitCamera(mode=CameraMode.TOP_VIEW), IntegrationMode.FAST, "production_top.png"),
        ("Orbit (geodesic)", OrbitCamera(), IntegrationMode.ACCURATE, "production_orbit_geodesic.png"),
    ]

    paths = []
    for name, camera, mode, filename in samples:
        print(f"Rendering {name}...")
        t0 = time.time()
        config = frame_for_camera(camera, resolution, resolution, quality=quality, mode=mode)
        img = renderer.render(config)
        print(f"  Complete in {time.time() - t0:.2f}s")
        path = os.path.join(output_dir, filename)
        PIL.Image.fromarray(img).save(path)
        paths.append(path)
    return paths


def run_physical_verification(renderer):
    """Run physical consistency checks."""
    print("\n--- Physical Verification ---")
    start = np.array([0.0, 0.0, -60.0])
    results = {}
    for mode in IntegrationMode:
        settings = MarchSettings(quality=QualitySettings(max_iterations=4000, step_scale=0.5),
                                 mode=mode, render_disk=False)

        # Photon capture threshold: b_c = 3*sqrt(3)/2 R_S
        impact = np.array([0.9, 1.1]) * constants.CRITICAL_IMPACT_PARAMETER
        origins = np.stack([np.array([b, 0.0, -60.0]) for b in impact])
        directions = np.tile([0.0, 0.0, 1.0], (2, 1))
        capture = march(origins, directions, settings, renderer.color_ramp, renderer.background)
        inside, outside = capture.termination
        print(f"[{mode.value}] b = 0.9 b_c -> {inside}, b = 1.1 b_c -> {outside}")

        # Weak-field deflection: 2 R_S / b
        b = 30.0
        far = march(start + np.array([b, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), settings,
                    renderer.color_ramp, renderer.background)
        deflection = np.arccos(np.clip(far.final_direction[0, 2], -1.0, 1.0))
        print(f"[{mode.value}] Deflection at b = {b}: {deflection:.5f} rad "
              f"(weak-field limit {2.0 / b:.5f} rad)")
        results[mode] = (inside == Termination.CAPTURED.value and outside == Termination.ESCAPED.value,
                         deflection)

    ok = all(captured_ok for captured_ok, _ in results.values())
    print("Capture threshold: " + ("OK" if ok else "MISMATCH"))
    return results


def main():
    parser = argparse.ArgumentParser(description="Black Hole Renderer CLI")
    parser.add_argument("--ui", action="store_true", help="Launch the interactive Gradio UI")
    parser.add_argument("--samples", action="store_true", help="Generate production-quality samples")
    parser.add_argument("--verify", action="store_true", help="Run physical consistency checks")
    parser.add_argument("--render", action="store_true", help="Render a single view")
    parser.add_argument("--res", type=int, default=1024, help="Horizontal resolution")
    parser.add_argument("--fov", type=float, default=constants.DEFAULT_FOV_DEGREES, help="Field of view (degrees)")
    parser.add_argument("--azimuth", type=float, default=45.0, help="Camera azimuth (degrees)")
    parser.add_argument("--elevation", type=float, default=81.0, help="Camera polar angle from +z (degrees)")
    parser.add_argument("--radius", type=float, default=constants.CAMERA_RADIUS, help="Camera distance (R_S)")
    parser.add_argument("--free-cam", action="store_true", help="Detach the camera from its orbit for --render")
    parser.add_argument("--pan-right", type=float, default=0.0, help="Free camera offset to the right (R_S)")
    parser.add_argument("--pan-up", type=float, default=0.0, help="Free camera offset upward (R_S)")
    parser.add_argument("--time", type=float, default=0.0, help="Disk animation time")
    parser.add_argument("--mode", choices=[m.value for m in IntegrationMode], default=IntegrationMode.FAST.value,
                        help="Ray integration fidelity")
    parser.add_argument("--quality", choices=sorted(constants.QUALITY_PRESETS), default=constants.DEFAULT_QUALITY,
                        help="Quality preset")
    parser.add_argument("--no-disk", action="store_true", help="Disable the accretion disk")
    parser.add_argument("--no-lensing", action="store_true", help="Disable gravitational lensing")
    parser.add_argument("--color-map", help="Strip texture image for the disk colors")
    parser.add_argument("--skybox", help="Folder with right/left/top/bottom/front/back PNG faces")
    parser.add_argument("--output", default="render.png", help="Output file name for --render")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log frame timings")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    renderer = build_renderer(args.color_map, args.skybox)

    if args.ui:
        from blackhole_renders.ui import CSS, create_ui
        print("Launching UI...")
        demo = create_ui(renderer)
        demo.launch(css=CSS)
    elif args.samples:
        generate_samples(renderer, args.res, quality=args.quality)
    elif args.verify:
        run_physical_verification(renderer)
    elif args.render:
        render_image(renderer, args)
    else:
        parser.print_help()

def run_ui():
    """Entry point for blackhole-ui command."""
    sys.argv = [sys.argv[0], "--ui"]
    main()

def run_verify():
    """Entry point for blackhole-verify command."""
    sys.argv = [sys.argv[0], "--verify"]
    main()

def run_samples():
    """Entry point for blackhole-samples command."""
    sys.argv = [sys.argv[0], "--samples"]
    main()

if __name__ == "__main__":
    main()
