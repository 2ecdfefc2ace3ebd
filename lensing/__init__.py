"""
Schwarzschild lensing renderer.

Modules:
    - constants:  physical scale, integration and compositing constants
    - uniforms:   fixed-layout records handed to the render kernel
    - blackhole:  black hole, observer and scene description
    - geodesic:   ray initialization, geodesic RHS and RK4 stepper
    - raytracing: per-pixel integration loop, intersections, blending, dispatch
    - renderer:   frame state, jitter source and the frame driver
"""
