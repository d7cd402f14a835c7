import gradio as gr
import numpy as np
import PIL.Image
from blackhole_renders import constants
from blackhole_renders.camera import CameraType, OrbitCamera
from blackhole_renders.core import Renderer
from blackhole_renders.main import detach_camera, frame_for_camera

# Keep the previous frame visible while the next one renders.
CSS = """
.gradio-container { background-color: #05060a !important; color: #e5e7eb !important; }
#output_img { background-color: #05060a !important; border-radius: 8px; overflow: hidden; border: none !important; }
#output_img img { object-fit: contain; }

.generating, .pending {
    opacity: 1 !important;
    filter: none !important;
    transition: none !important;
}

.loading, .progress-view, .loader, .spinner {
    display: none !important;
    visibility: hidden !important;
}
"""


def create_ui(renderer=None):

    renderer = renderer or Renderer()

    def render_frame(fov, azimuth_deg, elevation_deg, radius, roll_deg, camera_type, pan_x, pan_y,
                     time_sec, render_disk, lensing, mode, quality, resolution):
        camera = OrbitCamera(azimuth=np.deg2rad(azimuth_deg), elevation=np.deg2rad(elevation_deg),
                             radius=radius, roll=np.deg2rad(roll_deg))
        if CameraType(camera_type) == CameraType.FREE:
            detach_camera(camera, pan_x, pan_y)
        # Maintain 16:9 aspect ratio
        w = int(resolution)
        h = int(resolution * 0.5625)

        config = frame_for_camera(camera, w, h, fov=fov, quality=quality, mode=mode,
                                  render_disk=render_disk, lensing=lensing, time_sec=time_sec)
        return PIL.Image.fromarray(renderer.render(config))


    with gr.Blocks(title="Black Hole Renderer") as demo:

        gr.Markdown("# Black Hole Renderer")
        gr.Markdown("Schwarzschild lensing of a volumetric accretion disk.")

        with gr.Row():
            with gr.Column(scale=1):
                with gr.Group():
                    gr.Markdown("### 🎥 Camera")
                    fov_slider = gr.Slider(minimum=10, maximum=120, value=constants.DEFAULT_FOV_DEGREES, label="Field of View (FOV)")
                    azimuth = gr.Slider(minimum=0, maximum=360, value=45, step=1, label="Azimuth (deg)")
                    elevation = gr.Slider(minimum=1, maximum=179, value=81, step=1, label="Elevation (deg from +z)", info="90 is edge-on")
                    radius = gr.Slider(minimum=constants.CAMERA_MIN_RADIUS, maximum=60, value=constants.CAMERA_RADIUS, step=0.5, label="Distance (R_S)")
                    roll = gr.Slider(minimum=-180, maximum=180, value=0, step=1, label="Roll (deg)")
                    camera_type = gr.Radio(choices=[t.value for t in CameraType], value=CameraType.LOCKED.value, label="Camera", info="free detaches from the orbit")
                    with gr.Row():
                        pan_x = gr.Slider(minimum=-10, maximum=10, value=0, step=0.5, label="Free Pan Right")
                        pan_y = gr.Slider(minimum=-10, maximum=10, value=0, step=0.5, label="Free Pan Up")
                    res_slider = gr.Slider(minimum=64, maximum=1024, value=320, step=64, label="Render Resolution", info="Lower for speed, higher for quality")
                    reset_btn = gr.Button("🔄 Reset Viewport", variant="secondary")

                with gr.Group():
                    gr.Markdown("### 🌀 Physics")
                    time_slider = gr.Slider(minimum=0, maximum=60, value=0, step=0.5, label="Disk Time")
                    with gr.Row():
                        disk_toggle = gr.Checkbox(value=True, label="Accretion Disk")
                        lensing_toggle = gr.Checkbox(value=True, label="Gravitational Lensing")
                    mode_radio = gr.Radio(choices=["fast", "accurate"], value="fast", label="Integration")
                    quality_radio = gr.Radio(choices=list(constants.QUALITY_PRESETS), value=constants.DEFAULT_QUALITY, label="Quality")

            with gr.Column(scale=2):
                output_img = gr.Image(label="Viewport", interactive=False, elem_id="output_img")

        inputs = [fov_slider, azimuth, elevation, radius, roll, camera_type, pan_x, pan_y, time_slider,
                  disk_toggle, lensing_toggle, mode_radio, quality_radio, res_slider]

        def reset_view():
            return [constants.DEFAULT_FOV_DEGREES, 45, 81, constants.CAMERA_RADIUS, 0,
                    CameraType.LOCKED.value, 0, 0, 0,
                    True, True, "fast", constants.DEFAULT_QUALITY, 320]

        reset_btn.click(fn=reset_view, outputs=inputs)

        # Auto-render on any change
        for input_comp in inputs:
            if hasattr(input_comp, "change"):
                input_comp.change(fn=render_frame, inputs=inputs, outputs=output_img,
                                  trigger_mode="always_last", show_progress="hidden")

        demo.load(fn=render_frame, inputs=inputs, outputs=output_img, show_progress="hidden")

    return demo

if __name__ == "__main__":
    demo = create_ui()
    demo.launch(css=CSS)
