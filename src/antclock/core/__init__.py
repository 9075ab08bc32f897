# antclock.core - numerical engine
# Grid kernels, field state, equations of motion, RK4 stepper, diagnostics,
# event detection and the adaptive driver.
